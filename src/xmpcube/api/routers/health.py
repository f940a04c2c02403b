"""
Health & Observability Router
=============================
/health, /metrics
"""

import shutil

import cv2
import numpy as np
from fastapi import APIRouter

from xmpcube.api.config import API_VERSION, LOG_DIR
from xmpcube.api.middleware.logging import get_metrics
from xmpcube.core.extractor import EXTRACTOR_VERSION

router = APIRouter(tags=["health"])

MIN_FREE_GB = 1


@router.get("/health")
async def health():
    """Service status with dependency versions and free disk space."""
    disk = shutil.disk_usage(LOG_DIR)
    disk_free_gb = round(disk.free / (1024 ** 3), 1)
    disk_ok = disk_free_gb > MIN_FREE_GB

    return {
        "status": "healthy" if disk_ok else "degraded",
        "version": API_VERSION,
        "components": {
            "extractor": {"installed": True, "version": EXTRACTOR_VERSION},
            "opencv": {"installed": True, "version": cv2.__version__},
            "numpy": {"installed": True, "version": np.__version__},
            "disk": {"healthy": disk_ok, "free_gb": disk_free_gb},
        },
    }


@router.get("/metrics")
async def metrics():
    """Request metrics: counts, latency percentiles, top endpoints."""
    return get_metrics()
