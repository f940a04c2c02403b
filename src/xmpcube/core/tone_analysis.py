"""
Tone Analysis
=============

Scalar tone estimators computed from per-channel statistics:
exposure, contrast, brightness, shadows/highlights, dehaze, the
parametric curve regions and splits, and tone-map strength.

Each estimator returns a neutral value when the statistics it needs
are missing.
"""

from typing import Sequence

from xmpcube.core.channel_stats import (
    ChannelStats, average_stdev, mean_luminance, rgb_values,
)
from xmpcube.core.numeric import clamp, round_half_up


SHADOW_THRESHOLD = 64
DARK_THRESHOLD = 96
LIGHT_THRESHOLD = 160
HIGHLIGHT_THRESHOLD = 192

DEFAULT_SHADOW_SPLIT = 25
DEFAULT_MIDTONE_SPLIT = 50
DEFAULT_HIGHLIGHT_SPLIT = 75


def calculate_exposure(channels: Sequence[ChannelStats]) -> float:
    """Exposure in stops-ish units; 0 at a mean luminance of 128."""
    luminance = mean_luminance(channels)
    if luminance is None:
        return 0.0
    return (luminance - 128) / 128 * 5


def calculate_contrast(channels: Sequence[ChannelStats]) -> int:
    stdev = average_stdev(channels)
    if stdev is None:
        return 0
    return round_half_up(stdev / 128 * 50)


def calculate_brightness(channels: Sequence[ChannelStats]) -> int:
    luminance = mean_luminance(channels)
    if luminance is None:
        return 0
    return round_half_up(luminance / 255 * 100)


def calculate_shadows(channels: Sequence[ChannelStats]) -> int:
    values = [0.0]
    for c in channels:
        if c.has("mean") and c.mean < SHADOW_THRESHOLD:
            values.append((SHADOW_THRESHOLD - c.mean) / SHADOW_THRESHOLD)
    return round_half_up(max(values) * 50)


def calculate_highlights(channels: Sequence[ChannelStats]) -> int:
    values = [0.0]
    for c in channels:
        if c.has("mean") and c.mean > HIGHLIGHT_THRESHOLD:
            values.append((c.mean - HIGHLIGHT_THRESHOLD) / (255 - HIGHLIGHT_THRESHOLD))
    return round_half_up(max(values) * 50)


def calculate_dehaze(channels: Sequence[ChannelStats]) -> int:
    """Low variation reads as haze."""
    if not channels:
        return 0
    variation = sum(c.get("stdev", 0.0) for c in channels) / len(channels)
    return round_half_up((1 - variation / 128) * 30)


# =============================================================================
# PARAMETRIC CURVE
# =============================================================================

def _region_intensity(channels: Sequence[ChannelStats], intensity) -> float:
    """Average of ``intensity(mean)`` over channels; missing means contribute nothing."""
    total = sum(intensity(c.mean) for c in channels if c.has("mean"))
    return total / len(channels)


def calculate_parametric_shadows(channels: Sequence[ChannelStats]) -> int:
    if not channels:
        return 0
    level = _region_intensity(channels, lambda m: m / SHADOW_THRESHOLD if m < SHADOW_THRESHOLD else 1.0)
    return round_half_up((1 - level) * 25)


def calculate_parametric_darks(channels: Sequence[ChannelStats]) -> int:
    if not channels:
        return 0
    level = _region_intensity(channels, lambda m: m / DARK_THRESHOLD if m < DARK_THRESHOLD else 1.0)
    return round_half_up((1 - level) * 25)


def calculate_parametric_lights(channels: Sequence[ChannelStats]) -> int:
    if not channels:
        return 0
    level = _region_intensity(
        channels, lambda m: (255 - m) / (255 - LIGHT_THRESHOLD) if m > LIGHT_THRESHOLD else 1.0
    )
    return round_half_up((1 - level) * 25)


def calculate_parametric_highlights(channels: Sequence[ChannelStats]) -> int:
    if not channels:
        return 0
    level = _region_intensity(
        channels, lambda m: (255 - m) / (255 - HIGHLIGHT_THRESHOLD) if m > HIGHLIGHT_THRESHOLD else 1.0
    )
    return round_half_up((1 - level) * 25)


def _split(channels: Sequence[ChannelStats], base: int) -> int:
    luminance = mean_luminance(channels)
    if luminance is None:
        return base
    # shifts the split by up to +/-10 with overall brightness
    return round_half_up(base + (luminance / 255 - 0.5) * 20)


def calculate_parametric_shadow_split(channels: Sequence[ChannelStats]) -> int:
    return _split(channels, DEFAULT_SHADOW_SPLIT)


def calculate_parametric_midtone_split(channels: Sequence[ChannelStats]) -> int:
    return _split(channels, DEFAULT_MIDTONE_SPLIT)


def calculate_parametric_highlight_split(channels: Sequence[ChannelStats]) -> int:
    return _split(channels, DEFAULT_HIGHLIGHT_SPLIT)


def calculate_tone_map_strength(channels: Sequence[ChannelStats]) -> int:
    """Higher for wide dynamic range or high contrast images, 0-100."""
    maxima = rgb_values(channels, "max")
    minima = rgb_values(channels, "min")
    stdevs = rgb_values(channels, "stdev")
    if maxima is None or minima is None or stdevs is None or rgb_values(channels, "mean") is None:
        return 0

    dynamic_range = max(maxima) - min(minima)
    contrast = sum(stdevs) / 3
    strength = round_half_up((dynamic_range / 255 + contrast / 128) * 50)
    return int(clamp(strength, 0, 100))
