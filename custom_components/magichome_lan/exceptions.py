"""Exceptions for the MagicHome LAN integration."""
from homeassistant.exceptions import HomeAssistantError


class MagicHomeError(HomeAssistantError):
    """Base error for MagicHome bulbs."""


class MagicHomeConnectionError(MagicHomeError):
    """Raised when the bulb cannot be reached."""


class MagicHomeProtocolError(MagicHomeError):
    """Raised when the bulb answers with something we cannot parse."""
