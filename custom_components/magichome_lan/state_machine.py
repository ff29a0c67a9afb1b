"""Decides what a coalesced burst of requests needs from the bulb."""
from __future__ import annotations

from enum import Enum

from .color import (
    color_temperature_to_whites,
    clamp,
    hsl_to_rgb,
    hue_to_white_temperature,
)
from .const import MASK_BOTH, MAX_MIRED, MIN_MIRED, OperatingMode
from .protocol import build_color_command, build_power_command, build_white_command
from .state import UNSET, LightState


class Transition(Enum):
    """Action category for the pending target."""

    UNCHANGED = "unchanged"
    REDUNDANT = "redundant"
    TOGGLE = "toggle"
    FULL_UPDATE = "full_update"


def classify(state: LightState) -> Transition:
    """Classify the pending target against the current state.

    A lone on/off request becomes a power toggle, or nothing if the bulb is
    already there. Anything touching color, brightness, temperature or mode
    is a full update, which also carries the on/off request.
    """
    requested = state.pending.set_fields()
    if not requested:
        return Transition.UNCHANGED
    if requested == {"on"}:
        if bool(state.pending.on) == state.is_on:
            return Transition.REDUNDANT
        return Transition.TOGGLE
    return Transition.FULL_UPDATE


def resolve_brightness(state: LightState) -> float:
    """Brightness (0-100) to fold into a full-update frame."""
    pending = state.pending
    turn_on = state.is_on if pending.on is UNSET else bool(pending.on)
    if not turn_on:
        return 0

    if pending.brightness is not UNSET:
        return clamp(pending.brightness, 0, 100)
    if pending.luminance is not UNSET:
        brightness = clamp(pending.luminance * 2, 0, 100)
    else:
        brightness = state.brightness
    if brightness <= 0:
        # Turning on from off: brightness was reported as 0
        luminance = state.hsl.luminance
        brightness = clamp(luminance * 2, 0, 100) if luminance > 0 else 100
    return brightness


def resolve_mode(state: LightState) -> OperatingMode:
    """Operating mode the full update should leave the bulb in."""
    if state.pending.mode is not UNSET:
        return state.pending.mode
    return state.operating_mode


def build_full_update(
    state: LightState,
    color_white_threshold: float = 0,
    simultaneous_color_white: bool = False,
) -> bytes:
    """Build the single levels frame for a full update."""
    pending = state.pending
    brightness = resolve_brightness(state)
    hue = clamp(state.hsl.hue if pending.hue is UNSET else pending.hue, 0, 360)
    saturation = clamp(
        state.hsl.saturation if pending.saturation is UNSET else pending.saturation,
        0,
        100,
    )
    mode = resolve_mode(state)

    if mode is OperatingMode.TEMPERATURE:
        mired = pending.color_temperature
        if mired is UNSET:
            mired = state.color_temperature_mired
        if mired is None:
            mired = (MIN_MIRED + MAX_MIRED) / 2
        return build_white_command(color_temperature_to_whites(mired), brightness)

    # Colors are generated at full luminance; brightness does the dimming
    rgb = hsl_to_rgb(hue, saturation, 50)
    if mode is OperatingMode.WHITE or saturation < color_white_threshold:
        whites = hue_to_white_temperature(hue)
        if simultaneous_color_white:
            return build_white_command(whites, brightness, rgb=rgb, mask=MASK_BOTH)
        return build_white_command(whites, brightness)
    return build_color_command(rgb, brightness)


def command_for(
    transition: Transition,
    state: LightState,
    color_white_threshold: float = 0,
    simultaneous_color_white: bool = False,
) -> bytes | None:
    """Return the frame to send for a transition, or None for no write."""
    if transition is Transition.TOGGLE:
        return build_power_command(bool(state.pending.on))
    if transition is Transition.FULL_UPDATE:
        return build_full_update(state, color_white_threshold, simultaneous_color_white)
    return None
