"""
Histogram Engine
================

256-bin channel histograms, Gaussian smoothing and peak detection.

Two peak detectors share one entry point:

- Derivative mode (mean and stdev given): a peak is where the first
  derivative turns from rising to falling. Width comes from the distance
  to the nearest positive second derivative. Peaks far from the channel
  mean are discarded as insignificant.
- Fallback mode: strict local maxima, width is the count-weighted spread
  of a +/-10 bin window around the peak.

Both ignore anything below 1% of the tallest bin.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from xmpcube.core.channel_stats import ChannelStats
from xmpcube.core.numeric import is_number


HISTOGRAM_BINS = 256
MIN_PEAK_FRACTION = 0.01
MIN_SIGNIFICANCE = 0.1
LOCAL_WINDOW = 10


@dataclass
class HistogramPeak:
    """A detected histogram peak. Height is relative to the tallest bin."""
    position: int
    height: float
    width: float


@dataclass
class Histogram:
    counts: np.ndarray
    total: int
    mean: float
    stdev: float
    peaks: List[HistogramPeak] = field(default_factory=list)


def build_histogram(samples: np.ndarray, bins: int = HISTOGRAM_BINS) -> np.ndarray:
    """
    Count integer samples into ``bins`` buckets. Out-of-range samples are dropped.
    """
    values = np.asarray(samples).ravel().astype(np.int64)
    values = values[(values >= 0) & (values < bins)]
    return np.bincount(values, minlength=bins)[:bins]


def smooth_array(values, sigma: float = 2.0) -> np.ndarray:
    """
    Gaussian smoothing normalized by the weights actually used.

    Near the edges (and around NaN entries) fewer neighbours contribute,
    so each output is divided by its own weight sum rather than the full
    kernel sum. A constant array therefore stays constant.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return arr.copy()

    half = int(math.ceil(sigma * 6))
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    kernel = np.exp(-(offsets ** 2) / (2.0 * sigma * sigma))

    valid = np.isfinite(arr)
    data = np.where(valid, arr, 0.0)

    padded_data = np.pad(data, half)
    padded_valid = np.pad(valid.astype(np.float64), half)

    weighted = np.convolve(padded_data, kernel, mode="valid")
    weight_sums = np.convolve(padded_valid, kernel, mode="valid")

    with np.errstate(invalid="ignore", divide="ignore"):
        result = np.where(weight_sums > 0, weighted / weight_sums, 0.0)
    return result


def find_histogram_peaks(histogram,
                         mean: Optional[float] = None,
                         stdev: Optional[float] = None) -> List[HistogramPeak]:
    """
    Find peaks in a (usually smoothed) histogram.

    Args:
        histogram: 1D sequence of bin values
        mean: channel mean in bin units, enables derivative mode
        stdev: channel standard deviation, enables derivative mode

    Returns:
        Peaks in ascending position order
    """
    h = np.asarray(histogram, dtype=np.float64)
    n = h.size
    if n < 3:
        return []

    finite = h[np.isfinite(h)]
    if finite.size == 0:
        return []
    max_height = float(finite.max())
    if max_height <= 0:
        return []
    min_peak_height = max_height * MIN_PEAK_FRACTION

    if is_number(mean) and is_number(stdev):
        return _derivative_peaks(h, max_height, min_peak_height, float(mean), float(stdev))
    return _local_maxima_peaks(h, max_height, min_peak_height)


def _derivative_peaks(h: np.ndarray, max_height: float, min_peak_height: float,
                      mean: float, stdev: float) -> List[HistogramPeak]:
    # A channel with no spread has no tonal structure to describe
    if stdev <= 0:
        return []

    safe = np.where(np.isfinite(h), h, 0.0)
    first = np.diff(safe)
    second = np.diff(first)
    positive_second = np.flatnonzero(second > 0)

    peaks = []
    for i in range(1, h.size - 1):
        current = h[i]
        if not (np.isfinite(current) and current > min_peak_height):
            continue
        if not (first[i - 1] > 0 and first[i] < 0):
            continue

        # Nearest positive second derivative on each side
        left = positive_second[positive_second <= i - 1]
        right = positive_second[positive_second >= i]
        left_width = i - int(left[-1]) if left.size else 0
        right_width = int(right[0]) - i if right.size else 0
        width = max(left_width, right_width) * 2

        distance = (i - mean) / stdev
        significance = (current / max_height) * math.exp(-0.5 * distance * distance)
        if significance > MIN_SIGNIFICANCE:
            peaks.append(HistogramPeak(position=i, height=float(current / max_height), width=float(width)))

    return peaks


def _local_maxima_peaks(h: np.ndarray, max_height: float, min_peak_height: float) -> List[HistogramPeak]:
    peaks = []
    n = h.size
    for i in range(1, n - 1):
        current, prev, nxt = h[i], h[i - 1], h[i + 1]
        if not (np.isfinite(current) and np.isfinite(prev) and np.isfinite(nxt)):
            continue
        if not (current > min_peak_height and current > prev and current > nxt):
            continue

        lo = max(0, i - LOCAL_WINDOW)
        hi = min(n - 1, i + LOCAL_WINDOW)
        window = h[lo:hi + 1]
        positions = np.arange(lo, hi + 1, dtype=np.float64)
        ok = np.isfinite(window)
        weights = window[ok]
        total = weights.sum()
        if total <= 0:
            continue

        local_mean = float((positions[ok] * weights).sum() / total)
        variance = float((weights * (positions[ok] - local_mean) ** 2).sum())
        peaks.append(HistogramPeak(
            position=i,
            height=float(current / max_height),
            width=math.sqrt(variance / total),
        ))
    return peaks


def get_channel_histogram(samples: np.ndarray, stats: Optional[ChannelStats] = None) -> Histogram:
    """
    Build the histogram of one channel and find its tonal peaks.

    Mean and stdev come from ``stats`` when available, otherwise they are
    computed from the samples. Peaks are sorted tallest first.
    """
    values = np.asarray(samples).ravel()
    counts = build_histogram(values)
    total = int(values.size)

    if stats is not None and stats.has("mean"):
        mean = float(stats.mean)
    else:
        mean = float(values.mean()) if total else 0.0

    if stats is not None and stats.has("stdev"):
        stdev = float(stats.stdev)
    else:
        stdev = float(values.std()) if total else 0.0

    smoothed = smooth_array(counts)
    peaks = find_histogram_peaks(smoothed, mean, stdev)
    peaks.sort(key=lambda p: p.height, reverse=True)

    return Histogram(counts=counts, total=total, mean=mean, stdev=stdev, peaks=peaks)
