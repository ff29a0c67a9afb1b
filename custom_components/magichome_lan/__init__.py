"""MagicHome LAN light integration for Home Assistant."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_NAME, CONF_PORT, Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .const import (
    DOMAIN,
    CONF_COLOR_WHITE_THRESHOLD,
    CONF_DEBOUNCE_MS,
    CONF_DISCONNECT_DELAY,
    CONF_READBACK_ATTEMPTS,
    CONF_READBACK_DELAY_MS,
    CONF_SIMULTANEOUS_COLOR_WHITE,
    CONF_STATE_TIMEOUT_MS,
    CONF_WRITE_RETRY_MS,
    CONF_WRITE_TIMEOUT_MS,
    DEFAULT_COLOR_WHITE_THRESHOLD,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_DISCONNECT_DELAY,
    DEFAULT_PORT,
    DEFAULT_READBACK_ATTEMPTS,
    DEFAULT_READBACK_DELAY_MS,
    DEFAULT_SIMULTANEOUS_COLOR_WHITE,
    DEFAULT_STATE_TIMEOUT_MS,
    DEFAULT_WRITE_RETRY_MS,
    DEFAULT_WRITE_TIMEOUT_MS,
)
from .device import MagicHomeDevice
from .exceptions import MagicHomeConnectionError
from .transport import MagicHomeTransport

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.LIGHT]


def default_name(host: str) -> str:
    """Return the name used when the user gives none."""
    return f"MagicHome {host}"


def device_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Map config entry options onto MagicHomeDevice keyword arguments."""
    return {
        "debounce_ms": options.get(CONF_DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS),
        "write_retry_ms": options.get(CONF_WRITE_RETRY_MS, DEFAULT_WRITE_RETRY_MS),
        "readback_delay_ms": options.get(CONF_READBACK_DELAY_MS, DEFAULT_READBACK_DELAY_MS),
        "readback_attempts": options.get(CONF_READBACK_ATTEMPTS, DEFAULT_READBACK_ATTEMPTS),
        "state_timeout_ms": options.get(CONF_STATE_TIMEOUT_MS, DEFAULT_STATE_TIMEOUT_MS),
        "write_timeout_ms": options.get(CONF_WRITE_TIMEOUT_MS, DEFAULT_WRITE_TIMEOUT_MS),
        "color_white_threshold": options.get(
            CONF_COLOR_WHITE_THRESHOLD, DEFAULT_COLOR_WHITE_THRESHOLD
        ),
        "simultaneous_color_white": options.get(
            CONF_SIMULTANEOUS_COLOR_WHITE, DEFAULT_SIMULTANEOUS_COLOR_WHITE
        ),
    }


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a MagicHome bulb from a config entry."""
    host = entry.data[CONF_HOST]
    port = entry.data.get(CONF_PORT, DEFAULT_PORT)
    name = entry.data.get(CONF_NAME) or default_name(host)
    options = entry.options

    _LOGGER.debug("Setting up MagicHome device: %s (%s:%s)", name, host, port)

    transport = MagicHomeTransport(
        host,
        port,
        name,
        options.get(CONF_DISCONNECT_DELAY, DEFAULT_DISCONNECT_DELAY),
    )
    try:
        initial_state = await transport.async_probe(
            options.get(CONF_STATE_TIMEOUT_MS, DEFAULT_STATE_TIMEOUT_MS)
        )
    except MagicHomeConnectionError as ex:
        await transport.stop()
        raise ConfigEntryNotReady(str(ex)) from ex

    device = MagicHomeDevice(transport, name, **device_options(options))
    device.state.apply_device_state(initial_state)

    # Store device instance
    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = device

    # Handle options updates
    entry.async_on_unload(entry.add_update_listener(async_options_updated))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        device: MagicHomeDevice = hass.data[DOMAIN].pop(entry.entry_id)
        await device.stop()

    return unload_ok


async def async_options_updated(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    # Timings are fixed at construction; reload to apply them
    await hass.config_entries.async_reload(entry.entry_id)
