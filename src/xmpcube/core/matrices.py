"""
Color Matrices
==============

3x3 color transforms shared by the LUT emitter and the apply path.

Convention: a matrix acts on a column RGB vector, out = M @ rgb, so row
i gives the mix for output channel i. Composition is plain matrix
product; ``multiply_matrices(a, b)`` applies ``b`` first when used as
``a @ b @ rgb``.

Band matrices are composed in the fixed order red, orange, yellow,
green, aqua, blue, purple, magenta. Matrix products do not commute, so
this order is part of the output.
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from xmpcube.core.color_analysis import COLOR_BANDS
from xmpcube.core.color_space import hue_to_rgb
from xmpcube.core.numeric import clamp, round_half_up


def identity_matrix() -> np.ndarray:
    return np.eye(3)


def multiply_matrices(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Standard 3x3 product a @ b."""
    return np.asarray(a, dtype=np.float64) @ np.asarray(b, dtype=np.float64)


def hue_saturation_matrix(hue: float, saturation: float) -> np.ndarray:
    """
    Luminance-preserving hue rotation with a saturation scale.

    Args:
        hue: rotation in degrees
        saturation: -100..100, 0 keeps saturation
    """
    rad = math.radians(hue)
    cos_h = math.cos(rad)
    sin_h = math.sin(rad)
    sat = 1 + saturation / 100

    return np.array([
        [
            0.213 + cos_h * 0.787 * sat,
            0.213 - cos_h * 0.213 * sat + sin_h * 0.143,
            0.213 - cos_h * 0.213 * sat - sin_h * 0.787,
        ],
        [
            0.715 - cos_h * 0.715 * sat - sin_h * 0.715,
            0.715 + cos_h * 0.285 * sat,
            0.715 - cos_h * 0.715 * sat + sin_h * 0.715,
        ],
        [
            0.072 - cos_h * 0.072 * sat + sin_h * 0.928,
            0.072 - cos_h * 0.072 * sat - sin_h * 0.283,
            0.072 + cos_h * 0.928 * sat,
        ],
    ])


def shadow_highlight_matrix(shadows: float, highlights: float) -> np.ndarray:
    """Every output row mixes [shadow gain, midtone balance, highlight gain]."""
    shadow_gain = 2 ** (shadows / 100)
    highlight_gain = 2 ** (-highlights / 100)
    midtone = 1 - (shadow_gain + highlight_gain) / 2
    row = [shadow_gain, midtone, highlight_gain]
    return np.array([row, row, row])


def tone_curve_to_matrix_approx(curve: Optional[Sequence[Sequence[float]]]) -> List[float]:
    """
    Collapse a curve into a single matrix row [slope, 0, 0].

    The slope runs from the first to the last point. Curves that are
    missing, too short or degenerate give [1, 0, 0].
    """
    if not curve or len(curve) < 2:
        return [1.0, 0.0, 0.0]
    first, last = curve[0], curve[-1]
    if len(first) < 2 or len(last) < 2:
        return [1.0, 0.0, 0.0]
    values = (first[0], first[1], last[0], last[1])
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        return [1.0, 0.0, 0.0]
    run = last[0] - first[0]
    if run == 0:
        return [1.0, 0.0, 0.0]
    return [(last[1] - first[1]) / run, 0.0, 0.0]


def tone_slopes_matrix(red_curve, green_curve, blue_curve) -> np.ndarray:
    """Per-channel curve slopes on the diagonal."""
    slopes = [tone_curve_to_matrix_approx(c)[0] for c in (red_curve, green_curve, blue_curve)]
    return np.diag(slopes)


def color_matrix_from_adjustments(properties) -> np.ndarray:
    """
    Compose the per-band hue/saturation matrices.

    Starts from identity and right-multiplies each band with a nonzero
    hue or saturation, in band order.
    """
    result = identity_matrix()
    for band in COLOR_BANDS:
        hue = properties.band_hue(band) or 0
        saturation = properties.band_saturation(band) or 0
        if hue or saturation:
            result = multiply_matrices(result, hue_saturation_matrix(hue, saturation))
    return result


def split_toning_matrix(shadow_hue: float, shadow_saturation: float,
                        highlight_hue: float, highlight_saturation: float,
                        balance: float) -> np.ndarray:
    """
    Tint toward the shadow and highlight colors.

    Balance (0-100) shifts strength from the shadow tint to the
    highlight tint.
    """
    shadow = np.array(hue_to_rgb(shadow_hue))
    highlight = np.array(hue_to_rgb(highlight_hue))

    shadow_strength = shadow_saturation / 100 * ((100 - balance) / 100)
    highlight_strength = highlight_saturation / 100 * (balance / 100)

    tint = shadow * shadow_strength + highlight * highlight_strength
    return np.tile(tint, (3, 1)) + np.eye(3)


def create_parametric_curve(properties) -> List[List[int]]:
    """
    Five-point curve at 0, the three splits and 255.

    Splits are percentages of the tonal range. Each region lifts (or
    lowers) values by its slider amount: shadows and highlights fully,
    darks fading out toward the midtone split, lights fading in from it.
    """
    shadows = (properties.parametric_shadows or 0) / 100
    darks = (properties.parametric_darks or 0) / 100
    lights = (properties.parametric_lights or 0) / 100
    highlights = (properties.parametric_highlights or 0) / 100

    def split(value: Optional[float], default: float) -> float:
        return (default if value is None else value) / 100 * 255

    shadow_split = split(properties.parametric_shadow_split, 25)
    midtone_split = split(properties.parametric_midtone_split, 50)
    highlight_split = split(properties.parametric_highlight_split, 75)

    def map_value(x: float) -> int:
        y = x
        if x <= shadow_split:
            y += x * shadows
        elif x <= midtone_split:
            span = midtone_split - shadow_split
            t = (x - shadow_split) / span if span else 1.0
            y += x * darks * (1 - t)
        elif x <= highlight_split:
            span = highlight_split - midtone_split
            t = (x - midtone_split) / span if span else 1.0
            y += x * lights * t
        else:
            y += x * highlights
        return int(clamp(round_half_up(y), 0, 255))

    positions = [0.0, shadow_split, midtone_split, highlight_split, 255.0]
    return [[round_half_up(x), map_value(x)] for x in positions]


def has_parametric_adjustments(properties) -> bool:
    return bool(
        properties.parametric_shadows or properties.parametric_darks
        or properties.parametric_lights or properties.parametric_highlights
    )


def apply_color_matrix(pixels: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Apply ``matrix`` to every RGB row of ``pixels`` (..., 3)."""
    return np.asarray(pixels, dtype=np.float64) @ np.asarray(matrix, dtype=np.float64).T
