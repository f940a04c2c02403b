"""
Color matrices and the parametric curve.
"""

import numpy as np
import pytest

from xmpcube.core.matrices import (
    apply_color_matrix,
    color_matrix_from_adjustments,
    create_parametric_curve,
    has_parametric_adjustments,
    hue_saturation_matrix,
    identity_matrix,
    multiply_matrices,
    shadow_highlight_matrix,
    split_toning_matrix,
    tone_curve_to_matrix_approx,
    tone_slopes_matrix,
)
from xmpcube.core.properties import ImageProperties


def test_identity_is_neutral_for_multiply():
    m = hue_saturation_matrix(30, 20)
    assert np.allclose(multiply_matrices(identity_matrix(), m), m)
    assert np.allclose(multiply_matrices(m, identity_matrix()), m)


def test_full_desaturation_collapses_each_row():
    m = hue_saturation_matrix(0, -100)
    assert np.allclose(m, m[:, :1])


def test_default_record_has_identity_color_matrix():
    assert np.allclose(color_matrix_from_adjustments(ImageProperties()), np.eye(3))


def test_band_adjustments_compose():
    props = ImageProperties(red_hue=10, blue_saturation=-20)
    expected = hue_saturation_matrix(10, 0) @ hue_saturation_matrix(0, -20)
    assert np.allclose(color_matrix_from_adjustments(props), expected)


def test_shadow_highlight_rows_are_identical():
    m = shadow_highlight_matrix(50, -50)
    sg, hg = 2 ** 0.5, 2 ** 0.5
    assert np.allclose(m, [[sg, 1 - (sg + hg) / 2, hg]] * 3)


def test_neutral_split_toning_is_identity():
    assert np.allclose(split_toning_matrix(0, 0, 0, 0, 50), np.eye(3))


def test_split_toning_balance_moves_tint_to_highlights():
    m = split_toning_matrix(240, 100, 0, 100, 100)
    # balance 100: only the red highlight tint remains
    assert np.allclose(m - np.eye(3), [[1, 0, 0]] * 3)


def test_curve_slope_approximation():
    assert tone_curve_to_matrix_approx(None) == [1.0, 0.0, 0.0]
    assert tone_curve_to_matrix_approx([[0, 0], [0, 10]]) == [1.0, 0.0, 0.0]
    assert tone_curve_to_matrix_approx([[0, 0], [255, 128]])[0] == pytest.approx(128 / 255)

    m = tone_slopes_matrix(None, [[0, 0], [255, 128]], [[0, 10], [255, 265]])
    assert np.allclose(m, np.diag([1.0, 128 / 255, 1.0]))


def test_default_parametric_curve_is_identity():
    props = ImageProperties()
    assert not has_parametric_adjustments(props)
    assert create_parametric_curve(props) == [[0, 0], [64, 64], [128, 128], [191, 191], [255, 255]]


def test_parametric_shadows_lift_the_shadow_split():
    curve = create_parametric_curve(ImageProperties(parametric_shadows=100))
    assert curve[1] == [64, 128]
    assert curve[2] == [128, 128]
    assert curve[-1] == [255, 255]


def test_parametric_splits_are_percentages():
    curve = create_parametric_curve(ImageProperties(
        parametric_shadow_split=40, parametric_midtone_split=60, parametric_highlight_split=80,
    ))
    assert [x for x, _ in curve] == [0, 102, 153, 204, 255]


def test_zero_split_is_kept():
    curve = create_parametric_curve(ImageProperties(parametric_shadow_split=0))
    assert curve[0][0] == 0 and curve[1][0] == 0


def test_apply_color_matrix_on_pixels():
    pixels = np.array([[0.2, 0.4, 0.6], [1.0, 0.0, 0.0]])
    swap = np.array([[0, 0, 1], [0, 1, 0], [1, 0, 0]])
    assert np.allclose(apply_color_matrix(pixels, swap), [[0.6, 0.4, 0.2], [0.0, 0.0, 1.0]])
