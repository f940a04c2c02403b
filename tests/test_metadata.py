"""
Metadata reading and camera profiles.
"""

import io

import pytest
from PIL import Image
from PIL.ExifTags import Base as ExifBase

from conftest import create_test_image
from xmpcube.core.camera_profiles import (
    ADOBE_STANDARD,
    CAMERA_PROFILES,
    DEFAULT_DIGEST,
    calculate_profile_digest,
    determine_camera_profile,
    get_available_profiles,
)
from xmpcube.core.channel_stats import ChannelStats
from xmpcube.core.metadata import (
    ImageMetadata,
    determine_tone_curve_name,
    determine_white_balance,
    has_crop,
    read_image_metadata,
)


EMBEDDED_XMP = (
    '<x:xmpmeta xmlns:x="adobe:ns:meta/"><rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
    '<rdf:Description xmlns:crs="http://ns.adobe.com/camera-raw-settings/1.0/" '
    'crs:WhiteBalance="Cloudy" crs:HasCrop="True"/></rdf:RDF></x:xmpmeta>'
)


def jpeg_with_exif():
    img = Image.fromarray(create_test_image(64, 48))
    exif = Image.Exif()
    exif[ExifBase.Make] = "Canon"
    exif[ExifBase.Model] = "EOS R5"
    exif[ExifBase.WhiteBalance] = 1
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif.tobytes(), dpi=(300, 300))
    return buf.getvalue()


def test_read_exif_from_jpeg():
    meta = read_image_metadata(jpeg_with_exif())
    assert meta.format == "jpeg"
    assert (meta.width, meta.height) == (64, 48)
    assert meta.make == "Canon"
    assert meta.model == "EOS R5"
    assert meta.white_balance == 1
    assert meta.density == pytest.approx(300, abs=1)
    assert determine_white_balance(meta) == "Daylight"


def test_unreadable_bytes_give_empty_metadata():
    assert read_image_metadata(b"\x00\x01garbage") == ImageMetadata()


def test_embedded_xmp_wins():
    meta = ImageMetadata(width=10, height=10, white_balance=1, xmp=EMBEDDED_XMP)
    assert determine_white_balance(meta) == "Cloudy"
    assert has_crop(meta) is True


def test_crop_from_exif_dimensions():
    assert has_crop(ImageMetadata(width=100, height=80, original_width=200, original_height=160))
    assert not has_crop(ImageMetadata(width=100, height=80, original_width=100, original_height=80))
    assert not has_crop(ImageMetadata(width=100, height=80))


def test_white_balance_defaults_to_as_shot():
    assert determine_white_balance(ImageMetadata()) == "As Shot"
    assert determine_white_balance(ImageMetadata(white_balance=42)) == "As Shot"


@pytest.mark.parametrize("mean,stdev,expected", [
    (50.0, 100.0, "Medium Contrast"),
    (50.0, 10.0, "Medium High"),
    (200.0, 10.0, "Light"),
    (128.0, 120.0, "Strong Contrast"),
    (128.0, 10.0, "Medium"),
])
def test_tone_curve_name(mean, stdev, expected):
    channels = [ChannelStats(mean=mean, stdev=stdev, min=0.0, max=255.0)] * 3
    assert determine_tone_curve_name(channels) == expected


def test_tone_curve_name_without_stats():
    assert determine_tone_curve_name([]) == "Linear"


def test_camera_profiles():
    assert determine_camera_profile(None) == ADOBE_STANDARD
    assert determine_camera_profile("Unknown Maker") == ADOBE_STANDARD
    assert determine_camera_profile(" canon ") == CAMERA_PROFILES["CANON"].default
    assert get_available_profiles("Hasselblad") == CAMERA_PROFILES["HASSELBLAD"].profiles
    assert get_available_profiles(None) == (ADOBE_STANDARD,)


def test_profile_digest():
    assert calculate_profile_digest(None) == DEFAULT_DIGEST
    assert calculate_profile_digest("No Such Profile") == DEFAULT_DIGEST
    assert calculate_profile_digest("Camera Natural") == "2E8F4A7B1C5D9E3A"
