"""
Per-channel Image Statistics
============================

Mean / stdev / min / max for each channel of an RGB image, plus the
helpers the estimators use to read them.

A statistic that could not be computed is ``None``. ``0`` is a real
value (a black channel has mean 0) and is never treated as missing.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from xmpcube.core.numeric import is_number


@dataclass(frozen=True)
class ChannelStats:
    """Summary statistics for one image channel (values in 0-255)."""
    mean: Optional[float] = None
    stdev: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def get(self, name: str, default: float = 0.0) -> float:
        """Return the named statistic, or ``default`` when it is missing."""
        value = getattr(self, name)
        return float(value) if is_number(value) else default

    def has(self, *names: str) -> bool:
        return all(is_number(getattr(self, name)) for name in names)

    @property
    def complete(self) -> bool:
        return self.has("mean", "stdev", "min", "max")


def compute_channel_stats(image: np.ndarray) -> List[ChannelStats]:
    """
    Compute statistics for every channel of an image.

    Args:
        image: (H, W) or (H, W, C) array

    Returns:
        One ChannelStats per channel. An empty image yields empty stats.
    """
    if image.ndim == 2:
        image = image[:, :, np.newaxis]

    stats = []
    for c in range(image.shape[2]):
        channel = image[:, :, c].astype(np.float64)
        if channel.size == 0:
            stats.append(ChannelStats())
            continue
        stats.append(ChannelStats(
            mean=float(channel.mean()),
            stdev=float(channel.std()),
            min=float(channel.min()),
            max=float(channel.max()),
        ))
    return stats


def rgb_channels(channels: Sequence[ChannelStats]) -> Optional[Tuple[ChannelStats, ChannelStats, ChannelStats]]:
    """First three channels, or None when the image has fewer than three."""
    if len(channels) < 3:
        return None
    return channels[0], channels[1], channels[2]


def rgb_values(channels: Sequence[ChannelStats], name: str) -> Optional[Tuple[float, float, float]]:
    """The named statistic for R, G and B, or None if any of them is missing."""
    rgb = rgb_channels(channels)
    if rgb is None or not all(c.has(name) for c in rgb):
        return None
    return tuple(float(getattr(c, name)) for c in rgb)


def mean_luminance(channels: Sequence[ChannelStats]) -> Optional[float]:
    """Plain average of the R, G, B means."""
    means = rgb_values(channels, "mean")
    if means is None:
        return None
    return sum(means) / 3.0


def average_stdev(channels: Sequence[ChannelStats]) -> Optional[float]:
    stdevs = rgb_values(channels, "stdev")
    if stdevs is None:
        return None
    return sum(stdevs) / 3.0
