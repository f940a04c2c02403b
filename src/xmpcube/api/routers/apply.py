"""
Apply Router
============
POST /apply-xmp - render an XMP preset onto an uploaded photo
"""

import json
import logging
import time
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from xmpcube.api.images import decode_upload, image_to_bytes, read_validated_image
from xmpcube.api.validators import validate_xmp_content, validate_xmp_file
from xmpcube.core.apply import ApplyOptions, apply_xmp_to_image
from xmpcube.core.xmp import XMPParseError


logger = logging.getLogger(__name__)

router = APIRouter(tags=["apply"])


@router.post("/apply-xmp")
async def apply_xmp(
    image: UploadFile = File(..., description="Photo to edit"),
    xmp: UploadFile = File(..., description="Camera Raw settings (.xmp)"),
    precise: bool = Query(True, description="Evaluate curves exactly instead of by slope"),
    seed: Optional[int] = Query(None, description="Grain seed for reproducible output"),
):
    """Apply Camera Raw settings to an image; returns a JPEG."""
    start_time = time.time()
    contents = await read_validated_image(image)

    xmp_bytes = await xmp.read()
    validation = validate_xmp_file(xmp.filename, xmp.content_type, len(xmp_bytes))
    if not validation.is_valid:
        raise HTTPException(400, validation.error)

    xmp_text = xmp_bytes.decode("utf-8", errors="replace")
    validation = validate_xmp_content(xmp_text)
    if not validation.is_valid:
        raise HTTPException(400, validation.error)

    filename = Path(image.filename).name
    rgb = await run_in_threadpool(decode_upload, contents, filename)

    try:
        output, adjustments = await run_in_threadpool(
            apply_xmp_to_image, rgb, xmp_text, ApplyOptions(precise_curves=precise, seed=seed)
        )
    except XMPParseError as e:
        raise HTTPException(400, str(e))

    result_bytes = image_to_bytes(output, ".jpg")
    elapsed_ms = (time.time() - start_time) * 1000
    logger.info("Applied %s to %s in %.0fms", xmp.filename, filename, elapsed_ms)

    return Response(
        content=result_bytes,
        media_type="image/jpeg",
        headers={
            "Content-Disposition": f'attachment; filename="processed_{Path(filename).stem}.jpg"',
            "X-Processing-Time-Ms": str(round(elapsed_ms, 2)),
            "X-Applied-Adjustments": json.dumps(adjustments.to_dict(), separators=(",", ":")),
            "Access-Control-Expose-Headers": "X-Processing-Time-Ms, X-Applied-Adjustments",
        },
    )
