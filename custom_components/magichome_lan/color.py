"""Color conversions between Home Assistant's HSL model and the bulb's channels.

The host talks hue (0-360), saturation (0-100) and luminance (0-100). The bulb
takes RGB bytes plus a warm-white and a cold-white byte. All conversions clamp
their inputs rather than rejecting them.
"""
from __future__ import annotations

import colorsys
from typing import NamedTuple

from .const import MAX_MIRED, MIN_MIRED


class HSL(NamedTuple):
    """Hue 0-360, saturation 0-100, luminance 0-100."""

    hue: float
    saturation: float
    luminance: float


class RGB(NamedTuple):
    """Color channels, 0-255 each."""

    red: float
    green: float
    blue: float


class WhiteValues(NamedTuple):
    """White channels, 0-255 each."""

    warm_white: int
    cold_white: int


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def hsl_to_rgb(hue: float, saturation: float, luminance: float) -> RGB:
    """
    Convert HSL (hue 0-360, sat 0-100, lum 0-100) to RGB (0-255).

    Channels are returned unrounded; callers round after brightness scaling.
    """
    hue = clamp(hue, 0, 360) % 360
    r, g, b = colorsys.hls_to_rgb(
        hue / 360.0,
        clamp(luminance, 0, 100) / 100.0,
        clamp(saturation, 0, 100) / 100.0,
    )
    return RGB(r * 255, g * 255, b * 255)


def rgb_to_hsl(red: float, green: float, blue: float) -> HSL:
    """
    Convert RGB (0-255) to HSL (hue 0-360, sat 0-100, lum 0-100).
    """
    h, l, s = colorsys.rgb_to_hls(
        clamp(red, 0, 255) / 255.0,
        clamp(green, 0, 255) / 255.0,
        clamp(blue, 0, 255) / 255.0,
    )
    return HSL(h * 360, s * 100, l * 100)


def hue_to_white_temperature(hue: float) -> WhiteValues:
    """
    Split a hue into warm/cold white levels.

    Near 0/360 the cold channel fades out, near 180 the warm channel fades
    out, and at 90/270 both run at full strength.
    """
    hue = clamp(hue, 0, 360)
    if hue <= 90:
        return WhiteValues(255, round(255 * (hue / 90)))
    if hue <= 180:
        return WhiteValues(round(255 * (1 - (hue - 90) / 90)), 255)
    if hue <= 270:
        return WhiteValues(round(255 * ((hue - 180) / 90)), 255)
    return WhiteValues(255, round(255 * (1 - (hue - 270) / 90)))


def whites_to_color_temperature(warm_white: int, cold_white: int) -> int | None:
    """
    Map the warm/cold balance to a mired value.

    All-cold is MIN_MIRED, all-warm is MAX_MIRED, linear in the warm share.
    Returns None when both channels are dark.
    """
    warm = clamp(warm_white, 0, 255)
    cold = clamp(cold_white, 0, 255)
    total = warm + cold
    if total == 0:
        return None
    return round(MIN_MIRED + (MAX_MIRED - MIN_MIRED) * (warm / total))


def color_temperature_to_whites(mired: float) -> WhiteValues:
    """Inverse of whites_to_color_temperature, dominant channel at 255."""
    warm_share = (clamp(mired, MIN_MIRED, MAX_MIRED) - MIN_MIRED) / (MAX_MIRED - MIN_MIRED)
    if warm_share >= 0.5:
        return WhiteValues(255, round(255 * (1 - warm_share) / warm_share))
    return WhiteValues(round(255 * warm_share / (1 - warm_share)), 255)


def scale_channel(value: float, brightness: float) -> int:
    """Scale a 0-255 channel by a 0-100 brightness."""
    return round(clamp(value, 0, 255) / 100 * clamp(brightness, 0, 100))
