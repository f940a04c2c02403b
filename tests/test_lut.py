"""
.cube LUT generation.
"""

import math

import pytest

from xmpcube.core.lut import (
    calculate_processing_factors,
    generate_cube_lut,
    lut_grid,
)
from xmpcube.core.properties import ImageProperties


def cube_rows(content):
    lines = content.splitlines()
    assert lines[6] == ""
    return [tuple(float(v) for v in line.split()) for line in lines[7:]]


def test_header():
    lines = generate_cube_lut(ImageProperties(), "beach.jpg").splitlines()
    assert lines[:6] == [
        "#Created by xmp-cube",
        "#Source Image: beach.jpg",
        'TITLE "xmp-cube LUT"',
        "DOMAIN_MIN 0 0 0",
        "DOMAIN_MAX 1 1 1",
        "LUT_3D_SIZE 32",
    ]


def test_default_lut_is_identity_with_red_fastest():
    content = generate_cube_lut(ImageProperties(), "x.jpg")
    assert content.endswith("\n")

    rows = cube_rows(content)
    assert len(rows) == 32 ** 3

    lines = content.splitlines()[7:]
    assert lines[0] == "0.000000 0.000000 0.000000"
    assert lines[1] == "0.032258 0.000000 0.000000"
    assert lines[32] == "0.000000 0.032258 0.000000"
    assert lines[32 * 32] == "0.000000 0.000000 0.032258"
    assert lines[-1] == "1.000000 1.000000 1.000000"

    for i in (5, 777, 20000):
        r, g, b = rows[i]
        assert r == pytest.approx((i % 32) / 31, abs=1e-6)
        assert g == pytest.approx((i // 32 % 32) / 31, abs=1e-6)
        assert b == pytest.approx((i // 1024) / 31, abs=1e-6)


def test_no_negative_zero():
    content = generate_cube_lut(ImageProperties(exposure=-10), "x.jpg")
    assert "-0.000000" not in content


def test_processing_factors():
    neutral = calculate_processing_factors(ImageProperties())
    assert neutral.exposure == 1
    assert neutral.contrast == pytest.approx(1.0)

    bright = calculate_processing_factors(ImageProperties(exposure=2, contrast=100))
    assert bright.exposure == 2
    assert bright.contrast == 5.0

    clamped = calculate_processing_factors(ImageProperties(exposure=50))
    assert clamped.exposure == 2 ** 5


def test_exposure_doubles_and_clips():
    rows = cube_rows(generate_cube_lut(ImageProperties(exposure=2), "x.jpg"))
    assert rows[1][0] == pytest.approx(2 / 31, abs=1e-6)
    assert rows[31][0] == 1.0


def test_curves_reach_the_lut():
    props = ImageProperties(tone_curve=[[0, 255], [255, 0]])
    rows = cube_rows(generate_cube_lut(props, "x.jpg", size=2))
    assert rows[0] == pytest.approx((1.0, 1.0, 1.0))
    assert rows[-1] == pytest.approx((0.0, 0.0, 0.0))


def test_grid_size():
    assert lut_grid(2).tolist() == [
        [0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0],
        [0, 0, 1], [1, 0, 1], [0, 1, 1], [1, 1, 1],
    ]
    assert math.isclose(lut_grid(32)[31][0], 1.0)
