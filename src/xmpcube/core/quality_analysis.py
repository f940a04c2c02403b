"""
Detail and noise estimators.
"""

from typing import Optional, Sequence

from xmpcube.core.channel_stats import ChannelStats
from xmpcube.core.numeric import round_half_up


DEFAULT_SHARPNESS = 40


def calculate_sharpness(density: Optional[float]) -> int:
    """Sharpening amount from the image DPI; 40 when DPI is unknown."""
    if not density:
        return DEFAULT_SHARPNESS
    return min(round_half_up(density / 100), 100)


def _variation(channels: Sequence[ChannelStats]) -> float:
    if not channels:
        return 0.0
    return sum(c.get("stdev", 0.0) for c in channels) / len(channels)


def calculate_luminance_smoothing(channels: Sequence[ChannelStats]) -> int:
    return round_half_up(_variation(channels) / 128 * 50)


def calculate_clarity(channels: Sequence[ChannelStats]) -> int:
    return round_half_up(_variation(channels) / 128 * 30)


def calculate_texture(channels: Sequence[ChannelStats]) -> int:
    return round_half_up(_variation(channels) / 128 * 40)
