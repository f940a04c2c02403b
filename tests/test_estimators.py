"""
Global estimators working from channel statistics.
"""

import pytest

from xmpcube.core.channel_stats import ChannelStats, compute_channel_stats, mean_luminance
from xmpcube.core.color_analysis import (
    NEUTRAL_TEMPERATURE,
    calculate_color_temperature,
    calculate_saturation,
    calculate_tint,
    calculate_vibrance,
)
from xmpcube.core.numeric import is_number, round_half_up
from xmpcube.core.quality_analysis import (
    calculate_clarity,
    calculate_luminance_smoothing,
    calculate_sharpness,
    calculate_texture,
)
from xmpcube.core.split_toning import (
    calculate_split_toning_balance,
    calculate_split_toning_highlight_hue,
    calculate_split_toning_highlight_saturation,
    calculate_split_toning_shadow_hue,
    calculate_split_toning_shadow_saturation,
)
from xmpcube.core.tone_analysis import (
    calculate_brightness,
    calculate_contrast,
    calculate_exposure,
    calculate_parametric_midtone_split,
    calculate_shadows,
    calculate_tone_map_strength,
)
from conftest import create_test_image


def uniform(value, stdev=0.0):
    return [ChannelStats(mean=value, stdev=stdev, min=value, max=value) for _ in range(3)]


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(-0.5) == 0
    assert round_half_up(1.49) == 1


def test_zero_is_a_real_value():
    assert is_number(0)
    assert not is_number(None)
    assert not is_number(float("nan"))


def test_channel_stats_of_flat_image():
    stats = compute_channel_stats(create_test_image(value=128))
    assert len(stats) == 3
    assert stats[0] == ChannelStats(mean=128.0, stdev=0.0, min=128.0, max=128.0)


def test_missing_stats_fall_back():
    channels = [ChannelStats(), ChannelStats(), ChannelStats()]
    assert mean_luminance(channels) is None
    assert calculate_exposure(channels) == 0.0
    assert calculate_contrast(channels) == 0
    assert calculate_color_temperature(channels) == NEUTRAL_TEMPERATURE


def test_mid_grey_tone():
    channels = uniform(128.0)
    assert calculate_exposure(channels) == 0.0
    assert calculate_contrast(channels) == 0
    assert calculate_brightness(channels) == 50
    assert calculate_shadows(channels) == 0
    assert calculate_parametric_midtone_split(channels) == 50


def test_black_image_is_underexposed():
    channels = uniform(0.0)
    assert calculate_exposure(channels) == pytest.approx(-5.0)
    assert calculate_shadows(channels) == 50
    assert calculate_color_temperature(channels) == NEUTRAL_TEMPERATURE


def test_contrast_from_stdev():
    assert calculate_contrast(uniform(128.0, stdev=64.0)) == 25


def test_warm_image_color():
    channels = [ChannelStats(mean=m, stdev=0.0, min=m, max=m) for m in (200.0, 150.0, 100.0)]
    assert calculate_color_temperature(channels) == pytest.approx(5500 - 1000 * 75 / 175)
    assert calculate_tint(channels) == 0
    assert calculate_saturation(channels) == 50
    assert calculate_vibrance(channels) == 0


@pytest.mark.parametrize("means", [(200.0, 117.0, 90.0), (255.0, 0.0, 0.0), (90.0, 91.0, 180.0)])
def test_vibrance_stays_zero(means):
    channels = [ChannelStats(mean=m, stdev=0.0, min=m, max=m) for m in means]
    assert calculate_saturation(channels) > 0
    assert calculate_vibrance(channels) == 0


def test_split_toning():
    channels = [
        ChannelStats(mean=100.0, stdev=10.0, min=10.0, max=250.0),
        ChannelStats(mean=100.0, stdev=10.0, min=20.0, max=200.0),
        ChannelStats(mean=100.0, stdev=10.0, min=40.0, max=100.0),
    ]
    assert calculate_split_toning_shadow_hue(channels) == 240
    assert calculate_split_toning_shadow_saturation(channels) == 75
    assert calculate_split_toning_highlight_hue(channels) == 0
    assert calculate_split_toning_highlight_saturation(channels) == 60
    assert calculate_split_toning_balance(channels) == 63


def test_split_toning_all_black():
    channels = uniform(0.0)
    assert calculate_split_toning_shadow_saturation(channels) == 0
    assert calculate_split_toning_balance(channels) == 0


def test_quality_estimators():
    assert calculate_sharpness(None) == 40
    assert calculate_sharpness(300) == 3
    assert calculate_sharpness(20000) == 100

    channels = uniform(128.0, stdev=64.0)
    assert calculate_luminance_smoothing(channels) == 25
    assert calculate_clarity(channels) == 15
    assert calculate_texture(channels) == 20


def test_tone_map_strength_is_bounded():
    channels = [ChannelStats(mean=128.0, stdev=128.0, min=0.0, max=255.0)] * 3
    assert calculate_tone_map_strength(channels) == 100
    assert calculate_tone_map_strength(uniform(128.0)) == 0
