"""Protocol layer for MagicHome LAN bulbs.

This module handles:
- Checksums
- Command building (power, levels, preset patterns, state query)
- State response parsing

Every frame is built without its checksum; the transport appends it when
asked to (see Transport.send).
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from .color import RGB, WhiteValues, clamp, scale_channel
from .const import (
    CMD_LEVELS,
    CMD_PRESET_PATTERN,
    COMMAND_POWER_OFF,
    COMMAND_POWER_ON,
    COMMAND_STATE_QUERY,
    MASK_COLOR,
    MASK_WHITE,
    POWER_ON_BYTE,
    STATE_RESPONSE_HEADER,
    STATE_RESPONSE_LEN,
    TERMINATOR_LOCAL,
    OperatingMode,
)

_LOGGER = logging.getLogger(__name__)


# =============================================================================
# CHECKSUM
# =============================================================================

def calculate_checksum(data: bytes) -> int:
    """Calculate checksum (sum of all bytes & 0xFF)."""
    return sum(data) & 0xFF


def append_checksum(data: bytes) -> bytes:
    """Return data with its checksum byte appended."""
    return bytes(data) + bytes([calculate_checksum(data)])


def is_checksum_correct(msg: bytes) -> bool:
    """Check the trailing checksum byte of a message."""
    if len(msg) < 2:
        return False
    expected = calculate_checksum(msg[:-1])
    if expected != msg[-1]:
        _LOGGER.warning(
            "Checksum mismatch: expected 0x%02X, got 0x%02X", expected, msg[-1]
        )
        return False
    return True


def format_hex(data: bytes) -> str:
    """Format bytes as '0xNN 0xNN ...' for debug logs."""
    return " ".join(f"0x{b:02X}" for b in data)


# =============================================================================
# POWER COMMANDS
# =============================================================================

def build_power_command(turn_on: bool) -> bytes:
    """
    Build the fixed power command.

    Format: [0x71, state, 0x0F]
    State: 0x23 = ON, 0x24 = OFF
    """
    return COMMAND_POWER_ON if turn_on else COMMAND_POWER_OFF


# =============================================================================
# LEVELS COMMANDS
# =============================================================================

def build_levels_command(
    red: int,
    green: int,
    blue: int,
    warm_white: int = 0,
    cold_white: int | None = None,
    mask: int = MASK_COLOR,
) -> bytes:
    """
    Build a levels (0x31) command.

    8-byte form, used when no cold channel is given:
        [0x31, R, G, B, WW, mask, 0x0F] + checksum
    9-byte form, used when the white bank needs both channels:
        [0x31, R, G, B, WW, CW, mask, 0x0F] + checksum

    Mask byte values:
    - 0xF0 = color bank only (default)
    - 0x0F = white bank only
    - 0xFF = both banks
    """
    levels = [red, green, blue, warm_white]
    if cold_white is not None:
        levels.append(cold_white)
    return bytes(
        [CMD_LEVELS]
        + [int(clamp(level, 0, 255)) for level in levels]
        + [mask & 0xFF, TERMINATOR_LOCAL]
    )


def build_color_command(rgb: RGB, brightness: float) -> bytes:
    """
    Build a color-only levels command with brightness folded into the channels.

    Each channel is round(clamp(channel, 0, 255) / 100 * brightness).
    """
    return build_levels_command(
        scale_channel(rgb.red, brightness),
        scale_channel(rgb.green, brightness),
        scale_channel(rgb.blue, brightness),
        0x00,
        mask=MASK_COLOR,
    )


def build_white_command(
    whites: WhiteValues,
    brightness: float,
    rgb: RGB | None = None,
    mask: int = MASK_WHITE,
) -> bytes:
    """
    Build a levels command driving the white bank (9-byte form).

    When rgb is given the color channels are scaled and sent too, which is
    what the 0xFF "both banks" mask expects.
    """
    red = green = blue = 0
    if rgb is not None:
        red = scale_channel(rgb.red, brightness)
        green = scale_channel(rgb.green, brightness)
        blue = scale_channel(rgb.blue, brightness)
    return build_levels_command(
        red,
        green,
        blue,
        scale_channel(whites.warm_white, brightness),
        scale_channel(whites.cold_white, brightness),
        mask=mask,
    )


# =============================================================================
# PRESET PATTERNS
# =============================================================================

def speed_to_delay(speed: float) -> int:
    """Convert a 0-100 effect speed to the controller's delay byte (1-31)."""
    speed = clamp(speed, 0, 100)
    return round(30 - ((speed / 100) * 30)) + 1


def build_preset_pattern_command(pattern: int, speed: float) -> bytes:
    """
    Build a preset pattern command.

    Format: [0x61, pattern, delay, 0x0F] + checksum
    """
    return bytes([CMD_PRESET_PATTERN, pattern & 0xFF, speed_to_delay(speed), TERMINATOR_LOCAL])


# =============================================================================
# QUERY COMMANDS
# =============================================================================

def build_state_query() -> bytes:
    """
    Build state query command.

    Response is the 14-byte 0x81 format.
    """
    return COMMAND_STATE_QUERY


# =============================================================================
# RESPONSE PARSING
# =============================================================================

class DeviceState(NamedTuple):
    """State as reported by the bulb."""

    rgb: RGB
    white_values: WhiteValues
    is_on: bool
    operating_mode: OperatingMode
    model_num: int = 0
    preset_pattern: int = 0
    version_number: int = 0


def _operating_mode(color_mode: int, rgb: RGB, whites: WhiteValues) -> OperatingMode:
    """Work out which bank is active from the color-mode byte and levels."""
    if color_mode == MASK_COLOR:
        return OperatingMode.COLOR
    if color_mode != MASK_WHITE and any(rgb):
        return OperatingMode.COLOR
    if whites.warm_white and whites.cold_white:
        return OperatingMode.TEMPERATURE
    if color_mode == MASK_WHITE:
        return OperatingMode.WHITE
    return OperatingMode.COLOR


def parse_state_response(data: bytes) -> DeviceState | None:
    """
    Parse state query response (0x81 format).

    Response format (14 bytes):
        Byte 0: Header (0x81)
        Byte 1: Model number
        Byte 2: Power state (0x23 = ON, 0x24 = OFF)
        Byte 3: Preset pattern (0x61 = static color)
        Byte 4: Mode
        Byte 5: Speed
        Byte 6-8: RGB
        Byte 9: Warm white
        Byte 10: Version number
        Byte 11: Cold white
        Byte 12: Color mode (0xF0 colors set, 0x0F whites set, 0x00 both)
        Byte 13: Checksum

    Returns None for short, mis-headed or checksum-failed responses.
    """
    if len(data) < STATE_RESPONSE_LEN or data[0] != STATE_RESPONSE_HEADER:
        return None
    data = bytes(data[:STATE_RESPONSE_LEN])
    if not is_checksum_correct(data):
        return None

    rgb = RGB(data[6], data[7], data[8])
    whites = WhiteValues(data[9], data[11])

    return DeviceState(
        rgb=rgb,
        white_values=whites,
        is_on=data[2] == POWER_ON_BYTE,
        operating_mode=_operating_mode(data[12], rgb, whites),
        model_num=data[1],
        preset_pattern=data[3],
        version_number=data[10],
    )
