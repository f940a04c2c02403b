"""
Image Metadata
==============

Reads the facts the analysis needs from an encoded image with Pillow:
format, dimensions, DPI, a handful of EXIF tags and any embedded XMP
packet. Also derives the metadata-driven record fields (white balance,
crop flag, tone curve name, versions).

Metadata is best effort. An image Pillow cannot open still analyzes,
it just gets the defaults.
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from PIL import Image
from PIL.ExifTags import Base as ExifBase, IFD

from xmpcube.core.channel_stats import ChannelStats, mean_luminance
from xmpcube.core.tone_analysis import calculate_contrast
from xmpcube.core.xmp import XMPParseError, read_crs_fields


logger = logging.getLogger(__name__)

CURRENT_VERSION = "15.0"
CURRENT_PROCESS_VERSION = "15.0"

AS_SHOT = "As Shot"

# EXIF WhiteBalance / LightSource codes -> Camera Raw names
WB_MAP: Dict[int, str] = {
    0: "Auto",
    1: "Daylight",
    2: "Cloudy",
    3: "Tungsten",
    4: "Fluorescent",
    5: "Flash",
    6: "Custom",
    255: AS_SHOT,
}

_XMP_INFO_KEYS = ("xmp", "XML:com.adobe.xmp")
_TIFF_XMP_TAG = 700


@dataclass
class ImageMetadata:
    """What we know about an image besides its pixels."""
    format: Optional[str] = None
    width: int = 0
    height: int = 0
    density: Optional[float] = None
    make: Optional[str] = None
    model: Optional[str] = None
    white_balance: Optional[int] = None
    iso: Optional[int] = None
    exposure_time: Optional[float] = None
    f_number: Optional[float] = None
    focal_length: Optional[float] = None
    original_width: Optional[int] = None
    original_height: Optional[int] = None
    xmp: Optional[str] = None


# =============================================================================
# READING
# =============================================================================

def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _as_int(value) -> Optional[int]:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip().strip("\x00")
    return text or None


def _read_xmp_packet(img: Image.Image) -> Optional[str]:
    for key in _XMP_INFO_KEYS:
        if key in img.info:
            return _as_text(img.info[key])
    tags = getattr(img, "tag_v2", None)
    if tags is not None and _TIFF_XMP_TAG in tags:
        return _as_text(tags[_TIFF_XMP_TAG])
    return None


def read_image_metadata(data: bytes) -> ImageMetadata:
    """
    Read metadata from encoded image bytes.

    Never raises. Unreadable metadata is logged and yields an empty record.
    """
    try:
        img = Image.open(io.BytesIO(data))
    except Exception as e:
        logger.warning("Could not read image metadata: %s", e)
        return ImageMetadata()

    with img:
        meta = ImageMetadata(
            format=(img.format or "").lower() or None,
            width=img.width,
            height=img.height,
        )

        dpi = img.info.get("dpi")
        if dpi:
            meta.density = _as_float(dpi[0] if isinstance(dpi, (tuple, list)) else dpi)

        meta.xmp = _read_xmp_packet(img)

        try:
            exif = img.getexif()
        except Exception as e:
            logger.warning("Could not read EXIF: %s", e)
            return meta

        if not exif:
            return meta

        # Camera settings live in the Exif sub-IFD, identity tags in IFD0
        sub = exif.get_ifd(IFD.Exif) or {}

        def tag(key):
            value = sub.get(key)
            return exif.get(key) if value is None else value

        meta.make = _as_text(exif.get(ExifBase.Make))
        meta.model = _as_text(exif.get(ExifBase.Model))
        meta.white_balance = _as_int(tag(ExifBase.WhiteBalance))
        meta.iso = _as_int(tag(ExifBase.ISOSpeedRatings))
        meta.exposure_time = _as_float(tag(ExifBase.ExposureTime))
        meta.f_number = _as_float(tag(ExifBase.FNumber))
        meta.focal_length = _as_float(tag(ExifBase.FocalLength))
        meta.original_width = _as_int(tag(ExifBase.ExifImageWidth))
        meta.original_height = _as_int(tag(ExifBase.ExifImageHeight))

    return meta


# =============================================================================
# DERIVED FIELDS
# =============================================================================

def embedded_crs_fields(metadata: ImageMetadata) -> Dict[str, str]:
    """Raw crs: values from an embedded XMP packet, empty when there is none."""
    if not metadata.xmp:
        return {}
    try:
        return read_crs_fields(metadata.xmp)
    except XMPParseError as e:
        logger.debug("Ignoring embedded XMP: %s", e)
        return {}


def determine_white_balance(metadata: ImageMetadata) -> str:
    """Embedded XMP setting first, then the EXIF code, then 'As Shot'."""
    embedded = embedded_crs_fields(metadata).get("WhiteBalance")
    if embedded:
        return embedded
    if metadata.white_balance is not None:
        return WB_MAP.get(metadata.white_balance, AS_SHOT)
    return AS_SHOT


def has_crop(metadata: ImageMetadata) -> bool:
    """Cropped when EXIF's original size differs from the actual size."""
    if metadata.original_width and metadata.original_height:
        return (metadata.original_width != metadata.width
                or metadata.original_height != metadata.height)
    return embedded_crs_fields(metadata).get("HasCrop", "").strip().lower() == "true"


def determine_tone_curve_name(channels: Sequence[ChannelStats]) -> str:
    luminance = mean_luminance(channels)
    if luminance is None:
        return "Linear"
    contrast = calculate_contrast(channels)

    if luminance < 96 and contrast > 30:
        return "Medium Contrast"
    if luminance < 96:
        return "Medium High"
    if luminance > 160:
        return "Light"
    if contrast > 40:
        return "Strong Contrast"
    return "Medium"


def determine_version(metadata: Optional[ImageMetadata] = None) -> str:
    return CURRENT_VERSION


def determine_process_version(metadata: Optional[ImageMetadata] = None) -> str:
    return CURRENT_PROCESS_VERSION
