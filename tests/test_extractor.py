"""
End-to-end extraction.
"""

import numpy as np
import pytest

from conftest import create_test_image, encode_image
from xmpcube.core.camera_profiles import ADOBE_STANDARD
from xmpcube.core.extractor import (
    ExtractionSettings,
    XMPCubeExtractor,
    decode_image,
    downsample_for_analysis,
    main,
)
from xmpcube.core.properties import property_names
from xmpcube.core.tone_curves import default_tone_curve
from xmpcube.core.xmp import parse_xmp


@pytest.fixture
def extractor():
    return XMPCubeExtractor(ExtractionSettings(workers=4))


def test_flat_grey_record(extractor):
    props = extractor.analyze(create_test_image(value=128))

    assert props.exposure == 0.0
    assert props.contrast == 0
    assert props.brightness == 50
    assert props.saturation == 0
    assert props.vibrance == 0
    assert props.temperature == 5500.0
    assert props.tint == 0
    assert props.whites == 0 and props.blacks == 0
    assert props.sharpness == 40
    for curve in (props.tone_curve, props.tone_curve_red, props.tone_curve_green, props.tone_curve_blue):
        assert curve == default_tone_curve()

    assert props.has_settings is True
    assert props.already_applied is False
    assert props.has_crop is False
    assert props.white_balance == "As Shot"
    assert props.camera_profile == ADOBE_STANDARD
    assert props.version == "15.0"
    assert props.process_version == "15.0"


def test_every_field_is_populated(extractor):
    props = extractor.analyze(create_test_image(160, 120, scene='interior'))
    optional = {"vignette_feather", "vignette_midpoint", "grain_amount", "grain_size", "grain_frequency"}
    for name in property_names():
        if name not in optional:
            assert getattr(props, name) is not None, name


def test_dark_image_is_underexposed(extractor):
    props = extractor.analyze(create_test_image(value=20))
    assert props.exposure < -4
    assert props.shadows > 0


def test_extract_bytes(extractor, png_bytes):
    result = extractor.extract(png_bytes, "grey.png")
    assert 'rdf:about="grey.png"' in result.xmp_content
    assert "#Source Image: grey.png" in result.cube_content
    assert parse_xmp(result.xmp_content) == result.properties


def test_extract_rejects_garbage(extractor):
    with pytest.raises(ValueError):
        extractor.extract(b"definitely not an image", "x.jpg")


def test_extract_file_writes_sidecars(extractor, tmp_path):
    image_path = tmp_path / "room.png"
    image_path.write_bytes(encode_image(create_test_image(scene='interior'), '.png'))

    xmp_path, cube_path = extractor.extract_file(image_path, tmp_path / "out")
    assert xmp_path == tmp_path / "out" / "room.xmp"
    assert cube_path == tmp_path / "out" / "room.cube"
    assert xmp_path.read_text().startswith("<?xml")
    assert "LUT_3D_SIZE 32" in cube_path.read_text()


def test_cli(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "grey.png"
    image_path.write_bytes(encode_image(create_test_image(), '.png'))

    monkeypatch.setattr("sys.argv", ["xmpcube-extract", "-i", str(image_path)])
    assert main() == 0
    assert (tmp_path / "grey.xmp").exists()
    assert "Saved:" in capsys.readouterr().out

    monkeypatch.setattr("sys.argv", ["xmpcube-extract", "-i", str(tmp_path / "missing.png")])
    assert main() == 1


def test_decode_image_is_rgb():
    img = np.zeros((10, 10, 3), dtype=np.uint8)
    img[:, :] = [255, 0, 0]
    decoded = decode_image(encode_image(img, '.png'))
    assert decoded[0, 0].tolist() == [255, 0, 0]


def test_downsample_for_analysis():
    img = create_test_image(400, 300)
    small = downsample_for_analysis(img, 30_000)
    assert small.shape[0] * small.shape[1] <= 30_000
    assert downsample_for_analysis(img, 0) is img
    assert downsample_for_analysis(img, 10 ** 6) is img


def test_greyscale_image_keeps_neutral_bands(extractor):
    # columns differ so a (H, W) array misread as RGB pixels would look red
    grey = np.tile(np.array([200, 40, 40] * 10 + [128] * 10, dtype=np.uint8), (50, 1))
    props = extractor.analyze(grey)
    for band in ("red", "orange", "yellow", "green", "aqua", "blue", "purple", "magenta"):
        assert getattr(props, f"{band}_hue") == 0
        assert getattr(props, f"{band}_saturation") == 0
    assert props.tone_curve == default_tone_curve()
