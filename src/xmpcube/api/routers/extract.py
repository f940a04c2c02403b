"""
Extraction Router
=================
POST /extract-xmp-cube - analyze a photo, return its XMP and/or .cube LUT
"""

import io
import logging
import time
import zipfile
from pathlib import Path

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from xmpcube.api.config import ANALYSIS_WORKERS, MAX_ANALYSIS_PIXELS
from xmpcube.api.file_manager import cleanup_temp_files, save_text_file, save_uploaded_image
from xmpcube.api.images import decode_upload, read_validated_image
from xmpcube.core.extractor import EXTRACTOR_VERSION, ExtractionSettings, XMPCubeExtractor
from xmpcube.core.lut import generate_cube_lut
from xmpcube.core.metadata import read_image_metadata
from xmpcube.core.xmp import generate_xmp


logger = logging.getLogger(__name__)

router = APIRouter(tags=["extract"])

extractor = XMPCubeExtractor(ExtractionSettings(
    max_analysis_pixels=MAX_ANALYSIS_PIXELS,
    workers=ANALYSIS_WORKERS,
))


@router.post("/extract-xmp-cube")
async def extract_xmp_cube(
    image: UploadFile = File(..., description="Reference photo"),
    format: str = Query("json", pattern="^(json|xmp|cube|zip)$",
                        description="json (record + XMP), xmp, cube, or zip (both files)"),
):
    """
    Analyze a photo and synthesize the Camera Raw settings that describe its look.

    - **json**: the adjustment record and the XMP document
    - **xmp** / **cube**: the single file as a download
    - **zip**: both files
    """
    start_time = time.time()
    contents = await read_validated_image(image)
    filename = Path(image.filename).name

    rgb = await run_in_threadpool(decode_upload, contents, filename)
    logger.info("Extracting %s: %dx%d", filename, rgb.shape[1], rgb.shape[0])

    files = save_uploaded_image(filename, contents)
    try:
        metadata = await run_in_threadpool(read_image_metadata, files.image_path.read_bytes())
        properties = await run_in_threadpool(extractor.analyze, rgb, metadata)

        xmp_content = generate_xmp(filename, properties)
        cube_content = await run_in_threadpool(generate_cube_lut, properties, filename)
        save_text_file(files.xmp_path, xmp_content)
        save_text_file(files.cube_path, cube_content)

        elapsed_ms = (time.time() - start_time) * 1000
        headers = {
            "X-Processing-Time-Ms": str(round(elapsed_ms, 2)),
            "X-Extractor": f"xmp-cube v{EXTRACTOR_VERSION}",
        }

        if format == "xmp":
            headers["Content-Disposition"] = f'attachment; filename="{files.xmp_path.name}"'
            return Response(content=xmp_content, media_type="application/rdf+xml", headers=headers)

        if format == "cube":
            headers["Content-Disposition"] = f'attachment; filename="{files.cube_path.name}"'
            return Response(content=cube_content, media_type="text/plain", headers=headers)

        if format == "zip":
            zip_buffer = io.BytesIO()
            with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
                zf.write(files.xmp_path, files.xmp_path.name)
                zf.write(files.cube_path, files.cube_path.name)
            headers["Content-Disposition"] = f'attachment; filename="{Path(filename).stem}_preset.zip"'
            return Response(content=zip_buffer.getvalue(), media_type="application/zip", headers=headers)

        payload = {
            "message": "Image analyzed successfully",
            "filename": filename,
            "xmp_filename": files.xmp_path.name,
            "cube_filename": files.cube_path.name,
            "properties": properties.to_dict(),
            "xmp": xmp_content,
            "processing_time_ms": round(elapsed_ms, 2),
        }
        return JSONResponse(content=payload, headers=headers)
    finally:
        cleanup_temp_files(files.tmp_dir)
