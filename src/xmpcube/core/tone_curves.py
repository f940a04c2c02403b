"""
Tone Curve Synthesis
====================

Turns channel histograms into smooth tone curves.

Pipeline per channel:
    1. histogram peaks -> weighted tone points (anchors at 0 and 255,
       shadow lift below 128, highlight compression above, shoulders
       at +/- peak width)
    2. tone points -> 5..20 evenly spaced [input, output] pairs through a
       Gaussian-weighted adjustment plus an adaptive S-curve

The master curve pools the three channels' points weighted by
luminance (0.299, 0.587, 0.114).

A channel without significant peaks keeps the identity curve.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from xmpcube.core.channel_stats import ChannelStats
from xmpcube.core.histogram import Histogram, get_channel_histogram
from xmpcube.core.numeric import clamp, round_half_up


ToneCurve = List[List[int]]

LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)

SHADOW_THRESHOLD = 64
HIGHLIGHT_THRESHOLD = 192
MIN_CURVE_POINTS = 5
MAX_CURVE_POINTS = 20
S_CURVE_MIX = 0.1


def default_tone_curve() -> ToneCurve:
    return [[0, 0], [255, 255]]


@dataclass
class TonePoint:
    input: float
    output: float
    weight: float


# =============================================================================
# TONE POINTS
# =============================================================================

def tone_points_from_histogram(histogram: Histogram) -> List[TonePoint]:
    """
    Weighted control points for one channel, sorted by input.

    Tall peaks are trusted and moved little; short peaks get the full
    shadow recovery / highlight compression.
    """
    points = [TonePoint(0, 0, 1.0), TonePoint(255, 255, 1.0)]

    for peak in histogram.peaks:
        position = peak.position
        if position < 128:
            recovery = max(0.0, (128 - position) * 0.3)
            output = max(0.0, position + recovery * (1 - peak.height))
        else:
            compression = max(0.0, (position - 128) * 0.2)
            output = min(255.0, position - compression * (1 - peak.height))

        points.append(TonePoint(position, output, peak.height))

        shoulder = peak.width
        if position - shoulder > 0:
            points.append(TonePoint(
                position - shoulder, clamp(output - shoulder, 0, 255), peak.height * 0.5
            ))
        if position + shoulder < 255:
            points.append(TonePoint(
                position + shoulder, clamp(output + shoulder, 0, 255), peak.height * 0.5
            ))

    points.sort(key=lambda p: p.input)
    return points


def _shoulder_points(points: Sequence[TonePoint]) -> List[TonePoint]:
    shoulders = []
    for p in points:
        if p.input < SHADOW_THRESHOLD:
            position = p.input + p.weight * SHADOW_THRESHOLD
        elif p.input > HIGHLIGHT_THRESHOLD:
            position = p.input - (255 - p.input) * p.weight
        else:
            continue
        shoulders.append(TonePoint(position, position + (p.output - p.input) * 0.5, p.weight * 0.5))
    return shoulders


# =============================================================================
# SMOOTHING
# =============================================================================

def smooth_tone_curve(points: Sequence[TonePoint]) -> ToneCurve:
    """
    Resample weighted tone points into an evenly spaced curve.

    The number of output points (5-20) grows with how many points carry
    real weight. Each output is the input plus the Gaussian-weighted
    mean offset of nearby points, plus a small S-curve that is strongest
    in the midtones.
    """
    if not points:
        return default_tone_curve()

    inputs = np.array([p.input for p in points], dtype=np.float64)
    weights = np.array([p.weight for p in points], dtype=np.float64)
    n = len(points)

    mean_brightness = inputs.mean()
    contrast_factor = np.abs(inputs - mean_brightness).mean()
    dynamic_range = inputs.max() - inputs.min()

    s_strength = clamp(0.4 + contrast_factor / 128 * 0.2 + (1 - dynamic_range / 255) * 0.2, 0.2, 0.8)

    significant = int((weights > 0.1).sum())
    complexity = min(significant * weights.sum() / n, 3.0)
    num_points = int(clamp(round_half_up(MIN_CURVE_POINTS + complexity * 5), MIN_CURVE_POINTS, MAX_CURVE_POINTS))

    all_points = sorted(list(points) + _shoulder_points(points), key=lambda p: p.input)
    p_in = np.array([p.input for p in all_points], dtype=np.float64)
    p_out = np.array([p.output for p in all_points], dtype=np.float64)
    p_weight = np.array([p.weight for p in all_points], dtype=np.float64)
    sigmas = 255.0 / (num_points * 2) * (1 + p_weight)

    curve = []
    for i in range(num_points):
        position = i / (num_points - 1) * 255

        distance = position - p_in
        influence = p_weight * np.exp(-(distance * distance) / (2 * sigmas * sigmas))
        total = influence.sum()
        adjustment = float((influence * (p_out - p_in)).sum() / total) if total > 0 else 0.0

        x = position / 255
        s_curve = x + s_strength * math.sin(math.pi * x)
        blend = 4 * x * (1 - x)
        blended = x * (1 - blend) + s_curve * blend

        output = clamp(position + adjustment + (blended - x) * 255 * S_CURVE_MIX, 0, 255)
        curve.append([round_half_up(position), round_half_up(output)])

    return curve


def channel_tone_curve(points: Sequence[TonePoint]) -> ToneCurve:
    """Curve for one channel; identity when only the two anchors exist."""
    if len(points) <= 2:
        return default_tone_curve()
    return smooth_tone_curve(points)


def composite_tone_curve(channel_points: Sequence[Sequence[TonePoint]],
                         channels: Sequence[ChannelStats]) -> ToneCurve:
    """Luminance-weighted master curve pooled from the R, G, B point sets."""
    if len(channels) < 3 or not all(c.complete for c in channels[:3]):
        return default_tone_curve()
    if all(len(points) <= 2 for points in channel_points):
        return default_tone_curve()

    pooled = []
    for points, luminance in zip(channel_points, LUMINANCE_WEIGHTS):
        pooled.extend(TonePoint(p.input, p.output, p.weight * luminance) for p in points)
    return smooth_tone_curve(pooled)


# =============================================================================
# EVALUATION
# =============================================================================

def evaluate_tone_curve(values, curve: Optional[ToneCurve]) -> np.ndarray:
    """
    Apply a curve to values in 0-1.

    Piecewise linear between consecutive points (normalized by 255).
    Values not covered by any segment pass through unchanged.
    """
    values = np.asarray(values, dtype=np.float64)
    if not curve or len(curve) < 2:
        return values.copy()

    result = values.copy()
    covered = np.zeros(values.shape, dtype=bool)
    for (x0, y0), (x1, y1) in zip(curve[:-1], curve[1:]):
        x0, y0, x1, y1 = x0 / 255, y0 / 255, x1 / 255, y1 / 255
        in_segment = (values >= x0) & (values <= x1) & ~covered
        if not in_segment.any():
            continue
        if x1 == x0:
            result[in_segment] = y0
        else:
            t = (values[in_segment] - x0) / (x1 - x0)
            result[in_segment] = y0 + t * (y1 - y0)
        covered |= in_segment
    return result


# =============================================================================
# ENTRY POINT
# =============================================================================

def calculate_all_tone_curves(image: np.ndarray, channels: Sequence[ChannelStats]) -> Dict[str, ToneCurve]:
    """
    Master and per-channel curves for an RGB image.

    Histograms are built once per channel and shared by all four curves.
    """
    if image.ndim != 3 or image.shape[2] < 3 or len(channels) < 3:
        return {
            "tone_curve": default_tone_curve(),
            "tone_curve_red": default_tone_curve(),
            "tone_curve_green": default_tone_curve(),
            "tone_curve_blue": default_tone_curve(),
        }

    histograms = [get_channel_histogram(image[:, :, i], channels[i]) for i in range(3)]
    channel_points = [tone_points_from_histogram(h) for h in histograms]

    return {
        "tone_curve": composite_tone_curve(channel_points, channels),
        "tone_curve_red": channel_tone_curve(channel_points[0]),
        "tone_curve_green": channel_tone_curve(channel_points[1]),
        "tone_curve_blue": channel_tone_curve(channel_points[2]),
    }
