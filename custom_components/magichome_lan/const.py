"""Constants for the MagicHome LAN integration."""
from enum import Enum
from typing import Final

DOMAIN: Final = "magichome_lan"
MANUFACTURER: Final = "Magic Home"

# Configuration keys
CONF_DEBOUNCE_MS: Final = "debounce_ms"
CONF_WRITE_RETRY_MS: Final = "write_retry_ms"
CONF_READBACK_DELAY_MS: Final = "readback_delay_ms"
CONF_READBACK_ATTEMPTS: Final = "readback_attempts"
CONF_STATE_TIMEOUT_MS: Final = "state_timeout_ms"
CONF_WRITE_TIMEOUT_MS: Final = "write_timeout_ms"
CONF_DISCONNECT_DELAY: Final = "disconnect_delay"
CONF_COLOR_WHITE_THRESHOLD: Final = "color_white_threshold"
CONF_SIMULTANEOUS_COLOR_WHITE: Final = "simultaneous_color_white"

# Default values
DEFAULT_PORT: Final = 5577
# Host sends "turn on" and "brightness 50%" as separate requests; wait this
# long after the last one before writing a single combined command.
DEFAULT_DEBOUNCE_MS: Final = 5
DEFAULT_WRITE_RETRY_MS: Final = 100
# Reading right after a write returns the old levels.
DEFAULT_READBACK_DELAY_MS: Final = 500
DEFAULT_READBACK_ATTEMPTS: Final = 5
DEFAULT_STATE_TIMEOUT_MS: Final = 1000
DEFAULT_WRITE_TIMEOUT_MS: Final = 200
DEFAULT_DISCONNECT_DELAY: Final = 30  # seconds
DEFAULT_COLOR_WHITE_THRESHOLD: Final = 0  # 0 disables the white bank
DEFAULT_SIMULTANEOUS_COLOR_WHITE: Final = False

# Host-initiated refreshes closer together than this are dropped
STATUS_POLL_INTERVAL_MS: Final = 100

# Color temperature range (mired), HomeKit/Home Assistant conventions
MIN_MIRED: Final = 140  # coldest, ~7140K
MAX_MIRED: Final = 500  # warmest, 2000K

# Protocol bytes
COMMAND_POWER_ON: Final = bytes([0x71, 0x23, 0x0F])
COMMAND_POWER_OFF: Final = bytes([0x71, 0x24, 0x0F])
COMMAND_STATE_QUERY: Final = bytes([0x81, 0x8A, 0x8B])

CMD_LEVELS: Final = 0x31
CMD_PRESET_PATTERN: Final = 0x61
TERMINATOR_LOCAL: Final = 0x0F

STATE_RESPONSE_HEADER: Final = 0x81
STATE_RESPONSE_LEN: Final = 14
POWER_ON_BYTE: Final = 0x23
POWER_OFF_BYTE: Final = 0x24

# Mask byte: which LED bank(s) a levels frame activates
MASK_COLOR: Final = 0xF0
MASK_WHITE: Final = 0x0F
MASK_BOTH: Final = 0xFF

# Effects
EFFECT_FLASH: Final = "Flash"
FLASH_INTERVAL_MS: Final = 300
FLASH_STEPS: Final = 20


class OperatingMode(Enum):
    """Which LED bank the bulb is driving."""

    COLOR = "color"
    WHITE = "white"
    TEMPERATURE = "temperature"


# Built-in controller patterns (command 0x61)
PRESET_PATTERNS: Final[dict[str, int]] = {
    "Seven Color Cross Fade": 0x25,
    "Red Gradual Change": 0x26,
    "Green Gradual Change": 0x27,
    "Blue Gradual Change": 0x28,
    "Yellow Gradual Change": 0x29,
    "Cyan Gradual Change": 0x2A,
    "Purple Gradual Change": 0x2B,
    "White Gradual Change": 0x2C,
    "Red Green Cross Fade": 0x2D,
    "Red Blue Cross Fade": 0x2E,
    "Green Blue Cross Fade": 0x2F,
    "Seven Color Strobe Flash": 0x30,
    "Red Strobe Flash": 0x31,
    "Green Strobe Flash": 0x32,
    "Blue Strobe Flash": 0x33,
    "Yellow Strobe Flash": 0x34,
    "Cyan Strobe Flash": 0x35,
    "Purple Strobe Flash": 0x36,
    "White Strobe Flash": 0x37,
    "Seven Color Jumping": 0x38,
}
