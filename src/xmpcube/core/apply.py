"""
XMP Application
===============

Renders Camera Raw settings onto an RGB image. This is the inverse of
extraction: parse an XMP document, then push the pixels through a fixed
sequence of adjustments.

Order:
1. White balance (temperature / tint gains)
2. Exposure, brightness, contrast (linear)
3. Shadows / highlights (+ blacks / whites) recombination
4. Saturation, vibrance, shadow tint (HSV modulate)
5. Clarity and texture (convolution)
6. Dehaze and tone-map strength (linear)
7. Parametric curve
8. Per-band HSL color matrix
9. Split toning
10. Tone curves
11. Sharpening
12. Noise reduction
13. Vignette
14. Grain

Every stage is skipped when its sliders are zero, so an all-neutral XMP
returns the input pixels unchanged.

Usage:
    output, adjustments = apply_xmp_to_image(image_rgb, xmp_text)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from xmpcube.core.matrices import (
    apply_color_matrix,
    color_matrix_from_adjustments,
    create_parametric_curve,
    has_parametric_adjustments,
    shadow_highlight_matrix,
    split_toning_matrix,
    tone_slopes_matrix,
)
from xmpcube.core.numeric import clamp, round_half_up
from xmpcube.core.properties import ImageProperties
from xmpcube.core.tone_curves import default_tone_curve, evaluate_tone_curve
from xmpcube.core.xmp import parse_xmp


logger = logging.getLogger(__name__)

NEUTRAL_KELVIN = 5500.0
KELVIN_PER_STEP = 10.0
WB_STEP = 1.0075

TEXTURE_KERNEL = np.array([
    [-1, -1, -1],
    [-1, 9, -1],
    [-1, -1, -1],
], dtype=np.float32)


@dataclass
class ApplyOptions:
    """How to render curves and effects."""
    # Evaluate curves exactly; False collapses each curve to its endpoint slope
    precise_curves: bool = True
    # Grain RNG seed, None for a fresh pattern each call
    seed: Optional[int] = None


def _clip(image: np.ndarray) -> np.ndarray:
    return np.clip(image, 0, 255)


# ==========================================
# STAGES (float32 RGB, 0-255)
# ==========================================

def relative_temperature(value: float) -> float:
    """
    Temperature as a -100..100 slider.

    Values outside that range are absolute Kelvin, as written by
    extraction, and are measured from 5500K.
    """
    if -100 <= value <= 100:
        return value
    return clamp((value - NEUTRAL_KELVIN) / KELVIN_PER_STEP, -100, 100)


def apply_white_balance(image: np.ndarray, temperature: float, tint: float) -> np.ndarray:
    temp_factor = WB_STEP ** relative_temperature(temperature)
    tint_factor = WB_STEP ** tint

    gains = np.array([
        temp_factor if temp_factor > 1 else 1.0,
        tint_factor if tint_factor > 1 else 1.0,
        1 / temp_factor if temp_factor < 1 else 1.0,
    ], dtype=np.float32)
    return _clip(image * gains)


def apply_linear(image: np.ndarray, multiplier: float, offset: float) -> np.ndarray:
    return _clip(image * np.float32(multiplier) + np.float32(offset))


def apply_matrix(image: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    return _clip(apply_color_matrix(image, matrix).astype(np.float32))


def apply_modulate(image: np.ndarray, saturation: float, hue_shift: float) -> np.ndarray:
    """Scale HSV saturation and rotate hue by ``hue_shift`` degrees."""
    hsv = cv2.cvtColor(image / 255.0, cv2.COLOR_RGB2HSV)
    hsv[:, :, 0] = np.mod(hsv[:, :, 0] + hue_shift, 360.0)
    hsv[:, :, 1] = np.clip(hsv[:, :, 1] * saturation, 0.0, 1.0)
    return _clip(cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB) * 255.0)


def apply_clarity_texture(image: np.ndarray, clarity: float) -> np.ndarray:
    """Box blur sized by clarity, then the 3x3 texture sharpening kernel."""
    radius = max(1, round_half_up(clarity / 10))
    size = radius * 2 + 1
    result = cv2.blur(image, (size, size), borderType=cv2.BORDER_REPLICATE)
    result = cv2.filter2D(result, -1, TEXTURE_KERNEL, borderType=cv2.BORDER_REPLICATE)
    return _clip(result)


def apply_curves(image: np.ndarray, red, green, blue, precise: bool = True) -> np.ndarray:
    if not precise:
        return apply_matrix(image, tone_slopes_matrix(red, green, blue))

    result = image / 255.0
    for channel, curve in enumerate((red, green, blue)):
        result[:, :, channel] = evaluate_tone_curve(result[:, :, channel], curve)
    return _clip(result * 255.0).astype(np.float32)


def apply_sharpen(image: np.ndarray, sigma: float) -> np.ndarray:
    """Unsharp mask."""
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    return _clip(image + (image - blurred))


def apply_blur(image: np.ndarray, sigma: float) -> np.ndarray:
    return cv2.GaussianBlur(image, (0, 0), sigma)


def vignette_mask(height: int, width: int, amount: float,
                  feather: float = 50, midpoint: float = 50) -> np.ndarray:
    """
    Radial multiply mask: 1 at the center, falling to 1 - |amount|/100.

    ``midpoint`` is the gradient radius and ``feather`` where the falloff
    completes, both as percentages.
    """
    y, x = np.ogrid[:height, :width]
    cx, cy = width / 2, height / 2
    r = np.sqrt((x - cx) ** 2 + (y - cy) ** 2)
    r_max = np.sqrt(cx ** 2 + cy ** 2) or 1.0

    radius = max(midpoint, 1.0) / 100
    end = max(feather, 1.0) / 100
    t = np.clip((r / r_max) / radius / end, 0.0, 1.0)

    strength = min(abs(amount), 100) / 100
    return (1 - strength * t).astype(np.float32)


def apply_vignette(image: np.ndarray, amount: float, feather: float, midpoint: float) -> np.ndarray:
    mask = vignette_mask(image.shape[0], image.shape[1], amount, feather, midpoint)
    return _clip(image * mask[:, :, np.newaxis])


def grain_pattern(height: int, width: int, size: float, frequency: float,
                  rng: np.random.Generator) -> np.ndarray:
    """
    Noise in [0, 1]. Larger ``size`` gives coarser grain; ``frequency``
    (0-100) mixes in per-pixel roughness.
    """
    cell = max(1, round_half_up(1 + size / 25))
    coarse = rng.random((max(1, height // cell), max(1, width // cell)), dtype=np.float32)
    coarse = cv2.resize(coarse, (width, height), interpolation=cv2.INTER_LINEAR)
    fine = rng.random((height, width), dtype=np.float32)

    roughness = clamp(frequency / 100, 0.0, 1.0)
    return (1 - roughness) * coarse + roughness * fine


def apply_grain(image: np.ndarray, amount: float, size: float, frequency: float,
                rng: np.random.Generator) -> np.ndarray:
    """Overlay-blend a noise layer at ``amount`` percent opacity."""
    noise = grain_pattern(image.shape[0], image.shape[1], size, frequency, rng)[:, :, np.newaxis]
    base = image / 255.0
    overlay = np.where(base < 0.5, 2 * base * noise, 1 - 2 * (1 - base) * (1 - noise))
    opacity = clamp(abs(amount) / 100, 0.0, 1.0)
    return _clip((base + opacity * (overlay - base)) * 255.0).astype(np.float32)


# ==========================================
# PIPELINE
# ==========================================

def apply_adjustments(image: np.ndarray,
                      adj: ImageProperties,
                      options: Optional[ApplyOptions] = None) -> np.ndarray:
    """
    Render a parsed record onto an RGB image.

    Args:
        image: RGB uint8 (H, W, 3)
        adj: adjustments to apply
        options: rendering options

    Returns:
        RGB uint8 image of the same shape
    """
    options = options or ApplyOptions()
    if image.ndim != 3 or image.shape[2] < 3:
        raise ValueError(f"Expected an RGB image, got shape {image.shape}")

    result = image[:, :, :3].astype(np.float32)

    # 1. White balance
    if adj.temperature or adj.tint:
        result = apply_white_balance(result, adj.temperature, adj.tint)

    # 2. Exposure / brightness / contrast
    exposure_factor = 2 ** (adj.exposure / 100)
    contrast_factor = 1 + adj.contrast / 100
    brightness_factor = 1 + adj.brightness / 100
    result = apply_linear(result, exposure_factor * brightness_factor, -128 * (contrast_factor - 1))

    # 3. Shadows / highlights
    if adj.shadows or adj.highlights or adj.whites or adj.blacks:
        matrix = shadow_highlight_matrix(adj.shadows + adj.blacks, adj.highlights + adj.whites)
        result = apply_matrix(result, matrix)

    # 4. Saturation / vibrance / shadow tint
    if adj.saturation or adj.vibrance or adj.shadow_tint:
        saturation = 1 + (adj.saturation / 100 + adj.vibrance / 200)
        result = apply_modulate(result, saturation, adj.shadow_tint / 100 * 180)

    # 5. Clarity / texture
    if adj.clarity or adj.texture:
        result = apply_clarity_texture(result, adj.clarity)

    # 6. Dehaze / tone map
    if adj.dehaze or adj.tone_map_strength:
        strength = adj.dehaze / 100 + adj.tone_map_strength / 100
        result = apply_linear(result, 1 + strength, -strength * 128)

    # 7. Parametric curve
    if has_parametric_adjustments(adj):
        curve = create_parametric_curve(adj)
        result = apply_curves(result, curve, curve, curve, options.precise_curves)

    # 8. HSL
    if adj.has_color_adjustments:
        result = apply_matrix(result, color_matrix_from_adjustments(adj))

    # 9. Split toning
    if (adj.split_toning_shadow_hue or adj.split_toning_shadow_saturation
            or adj.split_toning_highlight_hue or adj.split_toning_highlight_saturation):
        matrix = split_toning_matrix(
            adj.split_toning_shadow_hue,
            adj.split_toning_shadow_saturation,
            adj.split_toning_highlight_hue,
            adj.split_toning_highlight_saturation,
            adj.split_toning_balance,
        )
        result = apply_matrix(result, matrix)

    # 10. Tone curves
    if adj.tone_curve or adj.tone_curve_red or adj.tone_curve_green or adj.tone_curve_blue:
        master = adj.tone_curve or default_tone_curve()
        result = apply_curves(
            result,
            adj.tone_curve_red or master,
            adj.tone_curve_green or master,
            adj.tone_curve_blue or master,
            options.precise_curves,
        )

    # 11. Sharpening
    if adj.sharpness > 0:
        result = apply_sharpen(result, adj.sharpness / 100)

    # 12. Noise reduction
    blur_sigma = max(adj.luminance_smoothing, adj.color_noise_reduction) / 100
    if blur_sigma > 0:
        result = apply_blur(result, blur_sigma)

    # 13. Vignette
    if adj.vignette_amount:
        result = apply_vignette(
            result,
            adj.vignette_amount,
            adj.vignette_feather or 50,
            adj.vignette_midpoint or 50,
        )

    # 14. Grain
    if adj.grain_amount:
        rng = np.random.default_rng(options.seed)
        result = apply_grain(result, adj.grain_amount, adj.grain_size or 1, adj.grain_frequency or 1, rng)

    return np.clip(np.rint(result), 0, 255).astype(np.uint8)


def apply_xmp_to_image(image: np.ndarray,
                       xmp: Union[str, bytes],
                       options: Optional[ApplyOptions] = None) -> Tuple[np.ndarray, ImageProperties]:
    """
    Parse an XMP document and render it onto an RGB image.

    Raises:
        XMPParseError: the document carries no Camera Raw settings
    """
    adjustments = parse_xmp(xmp)
    logger.debug("Applying XMP (process version %s)", adjustments.process_version)
    return apply_adjustments(image, adjustments, options), adjustments
