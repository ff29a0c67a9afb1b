"""Tests for the color model."""
import pytest

from custom_components.magichome_lan.color import (
    color_temperature_to_whites,
    hsl_to_rgb,
    hue_to_white_temperature,
    rgb_to_hsl,
    scale_channel,
    whites_to_color_temperature,
)
from custom_components.magichome_lan.const import MAX_MIRED, MIN_MIRED


class TestHueToWhiteTemperature:
    """Hue to warm/cold white split."""

    @pytest.mark.parametrize(
        ("hue", "expected"),
        [
            (0, (255, 0)),
            (90, (255, 255)),
            (180, (0, 255)),
            (270, (255, 255)),
            (360, (255, 0)),
        ],
    )
    def test_band_edges(self, hue, expected) -> None:
        assert tuple(hue_to_white_temperature(hue)) == expected

    @pytest.mark.parametrize("edge", [90, 180, 270])
    def test_bands_are_continuous(self, edge) -> None:
        below = hue_to_white_temperature(edge - 0.001)
        at = hue_to_white_temperature(edge)
        above = hue_to_white_temperature(edge + 0.001)
        for channel in range(2):
            assert abs(below[channel] - at[channel]) <= 1
            assert abs(above[channel] - at[channel]) <= 1

    def test_out_of_range_is_clamped(self) -> None:
        assert hue_to_white_temperature(-20) == hue_to_white_temperature(0)
        assert hue_to_white_temperature(400) == hue_to_white_temperature(360)


class TestHslConversion:
    """HSL <-> RGB."""

    def test_primary_colors(self) -> None:
        assert [round(c) for c in hsl_to_rgb(0, 100, 50)] == [255, 0, 0]
        assert [round(c) for c in hsl_to_rgb(120, 100, 50)] == [0, 255, 0]
        assert [round(c) for c in hsl_to_rgb(240, 100, 50)] == [0, 0, 255]

    def test_zero_saturation_is_grey(self) -> None:
        red, green, blue = hsl_to_rgb(200, 0, 50)
        assert red == pytest.approx(green) == pytest.approx(blue)

    def test_hue_360_wraps_to_red(self) -> None:
        assert [round(c) for c in hsl_to_rgb(360, 100, 50)] == [255, 0, 0]

    @pytest.mark.parametrize("luminance", [5, 25, 50, 75, 95])
    def test_round_trip_keeps_hue_and_saturation(self, luminance) -> None:
        for hue in range(0, 360, 5):
            for saturation in range(5, 101, 5):
                result = rgb_to_hsl(*hsl_to_rgb(hue, saturation, luminance))
                assert result.hue == pytest.approx(hue, abs=0.5), (hue, saturation)
                assert result.saturation == pytest.approx(saturation, abs=0.5), (hue, saturation)
                assert result.luminance == pytest.approx(luminance, abs=0.5)

    @pytest.mark.parametrize("luminance", [5, 50, 95])
    def test_grey_round_trip_keeps_zero_saturation(self, luminance) -> None:
        result = rgb_to_hsl(*hsl_to_rgb(210, 0, luminance))
        assert result.saturation == pytest.approx(0, abs=0.5)
        assert result.luminance == pytest.approx(luminance, abs=0.5)

    def test_black(self) -> None:
        assert tuple(rgb_to_hsl(0, 0, 0)) == (0, 0, 0)


class TestColorTemperature:
    """Warm/cold white <-> mired."""

    def test_endpoints(self) -> None:
        assert whites_to_color_temperature(0, 255) == MIN_MIRED
        assert whites_to_color_temperature(255, 0) == MAX_MIRED

    def test_dark_whites_have_no_temperature(self) -> None:
        assert whites_to_color_temperature(0, 0) is None

    def test_warmer_means_higher_mired(self) -> None:
        mireds = [whites_to_color_temperature(warm, 255 - warm) for warm in range(0, 256, 15)]
        assert mireds == sorted(mireds)

    def test_inverse_mapping(self) -> None:
        assert tuple(color_temperature_to_whites(MIN_MIRED)) == (0, 255)
        assert tuple(color_temperature_to_whites(MAX_MIRED)) == (255, 0)
        assert tuple(color_temperature_to_whites((MIN_MIRED + MAX_MIRED) / 2)) == (255, 255)
        for mired in (160, 250, 370, 480):
            assert whites_to_color_temperature(*color_temperature_to_whites(mired)) == pytest.approx(
                mired, abs=1
            )


def test_scale_channel() -> None:
    assert scale_channel(255, 100) == 255
    assert scale_channel(255, 0) == 0
    assert scale_channel(200, 50) == 100
    assert scale_channel(300, 150) == 255
