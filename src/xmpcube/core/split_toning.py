"""
Split toning estimators.

Shadows are read from each channel's minimum, highlights from its
maximum. The hue is the dominant channel placed on the color wheel
(R=0, G=120, B=240).
"""

from typing import List, Sequence

from xmpcube.core.channel_stats import ChannelStats
from xmpcube.core.numeric import round_half_up


def _levels(channels: Sequence[ChannelStats], name: str) -> List[float]:
    return [c.get(name, 0.0) for c in channels]


def _dominant_hue(levels: List[float]) -> int:
    if not levels:
        return 0
    dominant = levels.index(max(levels))
    return round_half_up(dominant / 3 * 360)


def _spread(levels: List[float]) -> int:
    if not levels or max(levels) == 0:
        return 0
    highest = max(levels)
    return round_half_up((highest - min(levels)) / highest * 100)


def calculate_split_toning_shadow_hue(channels: Sequence[ChannelStats]) -> int:
    return _dominant_hue(_levels(channels, "min"))


def calculate_split_toning_shadow_saturation(channels: Sequence[ChannelStats]) -> int:
    return _spread(_levels(channels, "min"))


def calculate_split_toning_highlight_hue(channels: Sequence[ChannelStats]) -> int:
    return _dominant_hue(_levels(channels, "max"))


def calculate_split_toning_highlight_saturation(channels: Sequence[ChannelStats]) -> int:
    return _spread(_levels(channels, "max"))


def calculate_split_toning_balance(channels: Sequence[ChannelStats]) -> int:
    if not channels:
        return 0
    shadows = sum(_levels(channels, "min")) / len(channels)
    highlights = sum(_levels(channels, "max")) / len(channels)
    return round_half_up((highlights - shadows) / 255 * 100)
