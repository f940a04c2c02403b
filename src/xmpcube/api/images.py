"""
Upload decoding and response encoding helpers.
"""

import cv2
import numpy as np
from fastapi import HTTPException, UploadFile

from xmpcube.api.config import JPEG_QUALITY
from xmpcube.api.validators import validate_image_file
from xmpcube.core.extractor import decode_image


async def read_validated_image(image: UploadFile) -> bytes:
    """Read an image upload, 400 when its name, type or size is rejected."""
    contents = await image.read()
    validation = validate_image_file(image.filename, image.content_type, len(contents))
    if not validation.is_valid:
        raise HTTPException(400, validation.error)
    return contents


def decode_upload(contents: bytes, filename: str) -> np.ndarray:
    """Upload bytes -> RGB uint8, 400 when the bytes are not an image."""
    try:
        return decode_image(contents)
    except ValueError:
        raise HTTPException(400, f"Could not decode image: {filename}")


def image_to_bytes(image_rgb: np.ndarray, format: str = ".jpg", quality: int = JPEG_QUALITY) -> bytes:
    """Encode an RGB image for the response."""
    if format == ".jpg":
        encode_params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    else:
        encode_params = []
    success, encoded = cv2.imencode(format, cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR), encode_params)
    if not success:
        raise HTTPException(500, "Failed to encode result image")
    return encoded.tobytes()
