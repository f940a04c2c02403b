"""
Analysis Router
===============
POST /analyze/local-adjustments - gradient, radial and brush mask detection
"""

import time
from pathlib import Path

from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from xmpcube.api.images import decode_upload, read_validated_image
from xmpcube.core.local_adjustments import detect_local_adjustments


router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post("/local-adjustments")
async def local_adjustments(image: UploadFile = File(..., description="Photo to inspect")):
    """Detect regions that look locally edited."""
    start_time = time.time()
    contents = await read_validated_image(image)
    filename = Path(image.filename).name
    rgb = await run_in_threadpool(decode_upload, contents, filename)

    masks = await run_in_threadpool(detect_local_adjustments, rgb)

    return {
        "filename": filename,
        "width": rgb.shape[1],
        "height": rgb.shape[0],
        "counts": {kind: len(items) for kind, items in masks.items()},
        "gradients": [m.to_dict() for m in masks["gradients"]],
        "radials": [m.to_dict() for m in masks["radials"]],
        "brushes": [m.to_dict() for m in masks["brushes"]],
        "processing_time_ms": round((time.time() - start_time) * 1000, 2),
    }
