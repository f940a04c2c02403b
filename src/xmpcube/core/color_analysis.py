"""
Color Analysis
==============

Per-band hue distribution and the color adjustments derived from it,
plus the global color estimators that only need channel statistics.

Bands are fixed and ordered: red, orange, yellow, green, aqua, blue,
purple, magenta. The order matters wherever bands are composed
(see matrices.color_matrix_from_adjustments).

Usage:
    lab = rgb_to_lab_array(pixels)
    hue, sat = analyze_color_band("red", pixels, lab)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from xmpcube.core.channel_stats import ChannelStats, rgb_values
from xmpcube.core.color_space import LabColor, chroma, hue_from_lab, rgb_to_lab_array
from xmpcube.core.histogram import find_histogram_peaks, smooth_array
from xmpcube.core.numeric import is_number, round_half_up


logger = logging.getLogger(__name__)

HUE_BINS = 360
CHROMA_CONFIDENCE = 128.0
HUE_SCALE = 0.75
TARGET_CHROMA = 60.0
SATURATION_SCALE = 1.25

NEUTRAL_TEMPERATURE = 5500.0


@dataclass(frozen=True)
class ColorRange:
    """A hue band. When start > end the band wraps through 0."""
    name: str
    start: float
    end: float
    center: float

    @property
    def wraps(self) -> bool:
        return self.start > self.end

    def contains(self, hue):
        """Membership test, inclusive at both ends. Works on scalars and arrays."""
        if self.wraps:
            return (hue >= self.start) | (hue <= self.end)
        return (hue >= self.start) & (hue <= self.end)


COLOR_RANGES: Tuple[ColorRange, ...] = (
    ColorRange("red", 345, 15, 0),
    ColorRange("orange", 15, 45, 30),
    ColorRange("yellow", 45, 75, 60),
    ColorRange("green", 75, 165, 120),
    ColorRange("aqua", 165, 195, 180),
    ColorRange("blue", 195, 255, 225),
    ColorRange("purple", 255, 285, 270),
    ColorRange("magenta", 285, 345, 315),
)

COLOR_BANDS: Tuple[str, ...] = tuple(r.name for r in COLOR_RANGES)


def get_color_range(name: str) -> Optional[ColorRange]:
    for color_range in COLOR_RANGES:
        if color_range.name == name:
            return color_range
    return None


@dataclass
class ColorDistribution:
    """Where one band's pixels sit in Lab, and how much of the image they cover."""
    mean: LabColor
    peaks: List[LabColor] = field(default_factory=list)
    histogram: np.ndarray = field(default_factory=lambda: np.zeros(HUE_BINS))
    weight: float = 0.0

    @classmethod
    def empty(cls) -> "ColorDistribution":
        return cls(mean=LabColor.zero(), peaks=[], histogram=np.zeros(HUE_BINS), weight=0.0)


# =============================================================================
# DISTRIBUTION
# =============================================================================

def as_pixel_array(image: np.ndarray, allow_pixel_list: bool = True) -> np.ndarray:
    """
    Flatten an RGB(A) image to (N, 3). Alpha is dropped.

    A 2D array is only taken as a pixel list when its second axis is 3 or 4
    wide and ``allow_pixel_list`` is set; any other 2D array is a greyscale
    image and is rejected.
    """
    pixels = np.asarray(image)
    if pixels.ndim == 3:
        pixels = pixels.reshape(-1, pixels.shape[2])
    elif pixels.ndim == 2 and not (allow_pixel_list and pixels.shape[1] in (3, 4)):
        raise ValueError(f"Expected an RGB image, got shape {np.shape(image)}")
    if pixels.ndim != 2 or pixels.shape[1] < 3:
        raise ValueError(f"Expected an RGB image, got shape {np.shape(image)}")
    return pixels[:, :3]


def analyze_color_distribution(image: np.ndarray,
                               color_range: ColorRange,
                               lab: Optional[np.ndarray] = None) -> ColorDistribution:
    """
    Collect the pixels whose hue falls in ``color_range``.

    Args:
        image: RGB image (H, W, 3) or pixel array (N, 3), values 0-255
        color_range: band to analyze
        lab: precomputed Lab values for the same pixels, shape (N, 3)

    Returns:
        ColorDistribution. Never raises: failures are logged and give
        the empty distribution.
    """
    try:
        if lab is None:
            lab = rgb_to_lab_array(as_pixel_array(image))
        lab = lab.reshape(-1, 3)

        total = lab.shape[0]
        if total == 0:
            return ColorDistribution.empty()

        hues = hue_from_lab(lab[:, 1], lab[:, 2])
        mask = color_range.contains(hues)
        member_hues = hues[mask]
        members = lab[mask]

        histogram = np.bincount(
            np.floor(member_hues).astype(np.int64) % HUE_BINS, minlength=HUE_BINS
        ).astype(np.float64)

        if members.shape[0] == 0:
            return ColorDistribution(mean=LabColor.zero(), peaks=[], histogram=histogram, weight=0.0)

        mean_values = members.mean(axis=0)
        mean = LabColor.from_array(mean_values)

        peaks = []
        for peak in find_histogram_peaks(smooth_array(histogram)):
            near = np.abs(member_hues - peak.position) < peak.width / 2
            if near.any():
                peaks.append(LabColor.from_array(members[near].mean(axis=0)))
            else:
                peaks.append(mean)

        return ColorDistribution(
            mean=mean,
            peaks=peaks,
            histogram=histogram,
            weight=members.shape[0] / total,
        )
    except Exception:
        logger.exception("Color distribution failed for band %s", color_range.name)
        return ColorDistribution.empty()


# =============================================================================
# PER-BAND ADJUSTMENTS
# =============================================================================

def _wrap_degrees(diff: float) -> float:
    if diff > 180:
        diff -= 360
    if diff < -180:
        diff += 360
    return diff


def hue_adjustment(distribution: ColorDistribution, color_range: ColorRange) -> int:
    """Chroma-weighted average hue offset from the band center."""
    if distribution.weight == 0:
        return 0

    total_adjustment = 0.0
    total_weight = 0.0
    for color in [distribution.mean] + list(distribution.peaks):
        diff = _wrap_degrees(hue_from_lab(color.a, color.b) - color_range.center)
        weight = min(1.0, chroma(color.a, color.b) / CHROMA_CONFIDENCE)
        total_adjustment += diff * weight
        total_weight += weight

    if total_weight == 0:
        return 0
    return round_half_up(total_adjustment / total_weight * HUE_SCALE * distribution.weight)


def saturation_adjustment(distribution: ColorDistribution) -> int:
    """Chroma offset from the target, weighted toward mid-luminance colors."""
    if distribution.weight == 0:
        return 0

    total_adjustment = 0.0
    total_weight = 0.0
    for color in [distribution.mean] + list(distribution.peaks):
        luminance_weight = 1.0 - abs(color.l - 50.0) / 50.0
        weight = luminance_weight * distribution.weight
        total_adjustment += (chroma(color.a, color.b) - TARGET_CHROMA) * weight
        total_weight += weight

    if total_weight == 0:
        return 0
    return round_half_up(total_adjustment / total_weight * SATURATION_SCALE)


def _resolve_range(color: str) -> ColorRange:
    color_range = get_color_range(color)
    if color_range is None:
        raise ValueError(f"Unknown color band: {color}")
    return color_range


def calculate_color_hue(color: str, image: np.ndarray, lab: Optional[np.ndarray] = None) -> int:
    """Hue shift for one band. 0 when the band has no pixels."""
    color_range = _resolve_range(color)
    try:
        return hue_adjustment(analyze_color_distribution(image, color_range, lab), color_range)
    except Exception:
        logger.exception("Hue estimate failed for band %s", color)
        return 0


def calculate_color_saturation(color: str, image: np.ndarray, lab: Optional[np.ndarray] = None) -> int:
    """Saturation shift for one band. 0 when the band has no pixels."""
    color_range = _resolve_range(color)
    try:
        return saturation_adjustment(analyze_color_distribution(image, color_range, lab))
    except Exception:
        logger.exception("Saturation estimate failed for band %s", color)
        return 0


def analyze_color_band(color: str, image: np.ndarray, lab: Optional[np.ndarray] = None) -> Tuple[int, int]:
    """(hue, saturation) for one band from a single distribution pass."""
    color_range = _resolve_range(color)
    try:
        distribution = analyze_color_distribution(image, color_range, lab)
        return hue_adjustment(distribution, color_range), saturation_adjustment(distribution)
    except Exception:
        logger.exception("Color band analysis failed for %s", color)
        return 0, 0


# =============================================================================
# GLOBAL COLOR (channel statistics only)
# =============================================================================

def _average_present(channels: Sequence[ChannelStats], name: str) -> float:
    """Sum of the present values divided by the channel count."""
    if not channels:
        return 0.0
    return sum(c.get(name, 0.0) for c in channels) / len(channels)


def calculate_color_temperature(channels: Sequence[ChannelStats]) -> float:
    means = rgb_values(channels, "mean")
    if means is None:
        return NEUTRAL_TEMPERATURE
    r, g, b = means
    if r + g == 0:
        return NEUTRAL_TEMPERATURE
    blue_ratio = b / ((r + g) / 2)
    return NEUTRAL_TEMPERATURE + (blue_ratio - 1) * 1000


def calculate_tint(channels: Sequence[ChannelStats]) -> int:
    means = rgb_values(channels, "mean")
    if means is None:
        return 0
    r, g, b = means
    if r + b == 0:
        return 0
    green_ratio = g / ((r + b) / 2)
    return round_half_up((green_ratio - 1) * 20)


def _colorfulness(channels: Sequence[ChannelStats]) -> Optional[float]:
    means = rgb_values(channels, "mean")
    if means is None:
        return None
    highest = max(means)
    if highest == 0:
        return 0.0
    return (highest - min(means)) / highest * 100


def calculate_saturation(channels: Sequence[ChannelStats]) -> int:
    colorfulness = _colorfulness(channels)
    return 0 if colorfulness is None else round_half_up(colorfulness)


def calculate_vibrance(channels: Sequence[ChannelStats]) -> int:
    """
    Colorfulness beyond what global saturation already accounts for.

    Saturation is the rounded colorfulness itself, so this is 0 for every
    input; kept so presets carry an explicit Vibrance value.
    """
    colorfulness = _colorfulness(channels)
    if colorfulness is None:
        return 0
    return round_half_up(colorfulness - calculate_saturation(channels))


def calculate_color_noise_reduction(channels: Sequence[ChannelStats]) -> int:
    return round_half_up(_average_present(channels, "stdev") / 128 * 50)


def calculate_shadow_tint(channels: Sequence[ChannelStats]) -> int:
    mins = rgb_values(channels, "min")
    if mins is None:
        return 0
    r, g, b = mins
    if r == 0:
        return 0
    balance = (g / r + b / r) / 2
    return round_half_up((balance - 1) * 20)


def calculate_vignette_amount(channels: Sequence[ChannelStats]) -> int:
    """Edge darkening estimate from how far each channel's min sits below its mean."""
    if not channels:
        return 0
    darkening = 0.0
    for c in channels:
        if c.has("mean", "min") and c.mean != 0:
            darkening += (c.mean - c.min) / c.mean
    return round_half_up(darkening / len(channels) * 50)
