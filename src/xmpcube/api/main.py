"""
xmp-cube - FastAPI Backend
==========================

REST API that turns a reference photo into Camera Raw settings (XMP) and
a 3D LUT, and applies XMP presets to other photos.

Run:
    uvicorn xmpcube.api.main:app --reload

Endpoints:
    POST /extract-xmp-cube          - Analyze a photo (json | xmp | cube | zip)
    POST /apply-xmp                 - Apply an XMP preset, returns JPEG
    POST /analyze/local-adjustments - Detect gradient / radial / brush masks
    GET  /health                    - Health check
    GET  /metrics                   - Request metrics
"""

import logging

import cv2
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from xmpcube.api.config import (
    ALLOWED_IMAGE_TYPES,
    API_TITLE,
    API_VERSION,
    CORS_ORIGINS,
    MAX_IMAGE_SIZE,
    MAX_XMP_SIZE,
)
from xmpcube.api.middleware.error_handler import ErrorHandlerMiddleware
from xmpcube.api.middleware.logging import RequestLoggingMiddleware
from xmpcube.api.routers import analyze, apply, extract, health
from xmpcube.core.extractor import EXTRACTOR_VERSION


logger = logging.getLogger(__name__)

# ============================================
# APP SETUP
# ============================================

app = FastAPI(
    title=API_TITLE,
    description="Extract Camera Raw settings and 3D LUTs from photos, and apply XMP presets",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Last added wraps outermost: CORS -> request logging -> error handler
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Processing-Time-Ms", "X-Applied-Adjustments"],
)

app.include_router(health.router)
app.include_router(extract.router)
app.include_router(apply.router)
app.include_router(analyze.router)


# ============================================
# ROUTES
# ============================================

@app.get("/")
async def root():
    """API info and capabilities."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "status": "running",
        "capabilities": {
            "extractor": EXTRACTOR_VERSION,
            "opencv": cv2.__version__,
        },
        "supported_formats": list(ALLOWED_IMAGE_TYPES),
        "limits": {
            "max_image_mb": MAX_IMAGE_SIZE // (1024 * 1024),
            "max_xmp_mb": MAX_XMP_SIZE // (1024 * 1024),
        },
        "endpoints": {
            "POST /extract-xmp-cube": "Analyze a photo into XMP + .cube",
            "POST /apply-xmp": "Apply an XMP preset to a photo",
            "POST /analyze/local-adjustments": "Detect local adjustment masks",
            "GET /health": "Health check",
            "GET /metrics": "Request metrics",
            "GET /docs": "API documentation",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
