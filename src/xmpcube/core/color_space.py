"""
Color Space Conversion
======================

sRGB <-> CIE L*a*b* under the D65 white point, plus the hue helpers
used by the band analysis and split toning.

Every function has a scalar form and a vectorized ``*_array`` form that
works on ``(..., 3)`` numpy arrays. The analysis code always uses the
vectorized form; the scalar form is for single colors and tests.

Hue convention:
    hue = atan2(b, a) in degrees, shifted by +180 and wrapped to [0, 360).
    Achromatic colors (a = b = 0) land on 180.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np


# D65 reference white
XN = 95.047
YN = 100.0
ZN = 108.883

RGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
])
XYZ_TO_RGB = np.linalg.inv(RGB_TO_XYZ)

LAB_EPSILON = 0.008856
LAB_KAPPA = 7.787
LAB_OFFSET = 16.0 / 116.0


@dataclass(frozen=True)
class LabColor:
    """A color in CIE L*a*b*."""
    l: float
    a: float
    b: float

    @property
    def chroma(self) -> float:
        return math.hypot(self.a, self.b)

    @property
    def hue(self) -> float:
        return hue_from_lab(self.a, self.b)

    @classmethod
    def zero(cls) -> "LabColor":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, values) -> "LabColor":
        return cls(float(values[0]), float(values[1]), float(values[2]))


# =============================================================================
# RGB -> LAB
# =============================================================================

def _srgb_to_linear(c: np.ndarray) -> np.ndarray:
    return np.where(c > 0.04045, ((c + 0.055) / 1.055) ** 2.4, c / 12.92)


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(t > LAB_EPSILON, np.cbrt(t), LAB_KAPPA * t + LAB_OFFSET)


def rgb_to_lab_array(rgb: np.ndarray) -> np.ndarray:
    """
    Convert RGB values in 0-255 to Lab.

    Args:
        rgb: array of shape (..., 3), any numeric dtype

    Returns:
        float64 array of the same shape holding (L, a, b)
    """
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = _srgb_to_linear(c)
    xyz = linear @ RGB_TO_XYZ.T * 100.0

    fx = _lab_f(xyz[..., 0] / XN)
    fy = _lab_f(xyz[..., 1] / YN)
    fz = _lab_f(xyz[..., 2] / ZN)

    lab = np.empty_like(xyz)
    lab[..., 0] = 116.0 * fy - 16.0
    lab[..., 1] = 500.0 * (fx - fy)
    lab[..., 2] = 200.0 * (fy - fz)
    return lab


def rgb_to_lab(r: float, g: float, b: float) -> LabColor:
    """Convert a single RGB triple (0-255) to Lab."""
    return LabColor.from_array(rgb_to_lab_array(np.array([r, g, b], dtype=np.float64)))


# =============================================================================
# LAB -> RGB
# =============================================================================

def _lab_f_inverse(f: np.ndarray) -> np.ndarray:
    cube = f ** 3
    return np.where(cube > LAB_EPSILON, cube, (f - LAB_OFFSET) / LAB_KAPPA)


def _linear_to_srgb(c: np.ndarray) -> np.ndarray:
    c = np.clip(c, 0.0, None)
    return np.where(c > 0.0031308, 1.055 * c ** (1.0 / 2.4) - 0.055, 12.92 * c)


def lab_to_rgb_array(lab: np.ndarray) -> np.ndarray:
    """Inverse of rgb_to_lab_array. Returns unclipped float RGB in 0-255."""
    lab = np.asarray(lab, dtype=np.float64)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = fy + lab[..., 1] / 500.0
    fz = fy - lab[..., 2] / 200.0

    xyz = np.stack([
        _lab_f_inverse(fx) * XN,
        _lab_f_inverse(fy) * YN,
        _lab_f_inverse(fz) * ZN,
    ], axis=-1) / 100.0

    linear = xyz @ XYZ_TO_RGB.T
    return _linear_to_srgb(linear) * 255.0


def lab_to_rgb(color: LabColor) -> Tuple[float, float, float]:
    rgb = lab_to_rgb_array(np.array([color.l, color.a, color.b]))
    return float(rgb[0]), float(rgb[1]), float(rgb[2])


# =============================================================================
# HUE / CHROMA
# =============================================================================

def hue_from_lab(a, b):
    """
    Hue angle in [0, 360). Accepts scalars or numpy arrays.

    The +180 shift means a = b = 0 maps to 180.
    """
    hue = np.degrees(np.arctan2(b, a)) + 180.0
    hue = np.mod(hue, 360.0)
    if np.ndim(hue) == 0:
        return float(hue)
    return hue


def chroma(a, b):
    """Chroma C = sqrt(a^2 + b^2). Accepts scalars or arrays."""
    result = np.hypot(a, b)
    if np.ndim(result) == 0:
        return float(result)
    return result


def hue_to_rgb(hue: float) -> Tuple[float, float, float]:
    """
    Fully saturated color on the HSV wheel, components in [0, 1].
    """
    h = (hue % 360.0) / 60.0
    c = 1.0
    x = c * (1.0 - abs(h % 2.0 - 1.0))

    if h < 1:
        return c, x, 0.0
    if h < 2:
        return x, c, 0.0
    if h < 3:
        return 0.0, c, x
    if h < 4:
        return 0.0, x, c
    if h < 5:
        return x, 0.0, c
    return c, 0.0, x
