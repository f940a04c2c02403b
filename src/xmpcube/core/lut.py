"""
3D LUT Generation (.cube)
=========================

Bakes an ImageProperties record into a 32x32x32 Adobe/Resolve style
``.cube`` table.

Each grid color goes through:
    1. the composed per-band color matrix
    2. the per-channel tone curves
    3. exposure and contrast factors, clamped to [0, 1]

Rows are written with blue outermost and red varying fastest, as the
format requires.
"""

import math
from dataclasses import dataclass

import numpy as np

from xmpcube.core.matrices import apply_color_matrix, color_matrix_from_adjustments
from xmpcube.core.numeric import clamp
from xmpcube.core.properties import ImageProperties
from xmpcube.core.tone_curves import evaluate_tone_curve


LUT_SIZE = 32
LUT_TITLE = "xmp-cube LUT"

EXPOSURE_RANGE = (-10.0, 10.0)
CONTRAST_RANGE = (-100.0, 100.0)
MAX_CONTRAST_FACTOR = 5.0


@dataclass(frozen=True)
class ProcessingFactors:
    exposure: float
    contrast: float


def calculate_processing_factors(properties: ImageProperties) -> ProcessingFactors:
    """
    Exposure doubles every 2 units. Contrast maps -100..100 onto
    tan(0..pi/2), so 0 gives a factor of 1.
    """
    exposure = clamp(properties.exposure or 0.0, *EXPOSURE_RANGE)
    contrast = clamp(properties.contrast or 0.0, *CONTRAST_RANGE)
    return ProcessingFactors(
        exposure=2 ** (exposure / 2),
        contrast=min(MAX_CONTRAST_FACTOR, math.tan((contrast + 100) * math.pi / 400)),
    )


def cube_header(filename: str, size: int = LUT_SIZE) -> str:
    return (
        "#Created by xmp-cube\n"
        f"#Source Image: {filename}\n"
        f'TITLE "{LUT_TITLE}"\n'
        "DOMAIN_MIN 0 0 0\n"
        "DOMAIN_MAX 1 1 1\n"
        f"LUT_3D_SIZE {size}\n"
        "\n"
    )


def lut_grid(size: int = LUT_SIZE) -> np.ndarray:
    """All grid colors in file order, shape (size**3, 3), values 0-1."""
    levels = np.arange(size, dtype=np.float64) / (size - 1)
    b, g, r = np.meshgrid(levels, levels, levels, indexing="ij")
    return np.stack([r.ravel(), g.ravel(), b.ravel()], axis=1)


def transform_colors(colors: np.ndarray, properties: ImageProperties) -> np.ndarray:
    """Run (N, 3) colors in 0-1 through the LUT pipeline."""
    points = apply_color_matrix(colors, color_matrix_from_adjustments(properties))

    curves = (
        properties.tone_curve_red or properties.tone_curve,
        properties.tone_curve_green or properties.tone_curve,
        properties.tone_curve_blue or properties.tone_curve,
    )
    for channel, curve in enumerate(curves):
        points[:, channel] = evaluate_tone_curve(points[:, channel], curve)

    factors = calculate_processing_factors(properties)
    return np.clip(points * factors.exposure * factors.contrast, 0.0, 1.0)


def generate_cube_lut(properties: ImageProperties, filename: str, size: int = LUT_SIZE) -> str:
    """
    Render the .cube document for a record.

    Args:
        properties: adjustments to bake
        filename: source image name, recorded in a header comment
        size: grid resolution per axis

    Returns:
        Header plus size**3 lines of "r g b" with six decimals
    """
    points = transform_colors(lut_grid(size), properties) + 0.0  # folds -0.0 into 0.0
    rows = "\n".join(f"{r:.6f} {g:.6f} {b:.6f}" for r, g, b in points.tolist())
    return cube_header(filename, size) + rows + "\n"
