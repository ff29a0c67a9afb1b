"""Config flow for the MagicHome LAN integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_HOST, CONF_NAME, CONF_PORT
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
import homeassistant.helpers.config_validation as cv

from . import default_name
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
from .exceptions import MagicHomeConnectionError
from .transport import MagicHomeTransport

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): cv.string,
        vol.Optional(CONF_NAME): cv.string,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): cv.port,
    }
)


async def validate_connection(host: str, port: int) -> None:
    """Read the bulb state once.

    Raises:
        MagicHomeConnectionError: if the bulb does not answer
    """
    transport = MagicHomeTransport(host, port, disconnect_delay=0)
    try:
        await transport.async_probe(DEFAULT_STATE_TIMEOUT_MS)
    finally:
        await transport.stop()


class MagicHomeConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle config flow for MagicHome LAN bulbs."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle user-initiated setup."""
        errors: dict[str, str] = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip()
            port = user_input.get(CONF_PORT, DEFAULT_PORT)
            await self.async_set_unique_id(host)
            self._abort_if_unique_id_configured()

            try:
                await validate_connection(host, port)
            except MagicHomeConnectionError as ex:
                _LOGGER.debug("Cannot connect to %s:%s: %s", host, port, ex)
                errors["base"] = "cannot_connect"
            except Exception as ex:
                _LOGGER.exception("Validation error: %s", ex)
                errors["base"] = "unknown"
            else:
                name = user_input.get(CONF_NAME) or default_name(host)
                return self.async_create_entry(
                    title=name,
                    data={CONF_HOST: host, CONF_NAME: name, CONF_PORT: port},
                )

        return self.async_show_form(
            step_id="user",
            data_schema=self.add_suggested_values_to_schema(
                STEP_USER_DATA_SCHEMA, user_input
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> OptionsFlowHandler:
        """Get the options flow handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle timing and white-bank options."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self._config_entry.options

        schema_dict: dict[vol.Marker, Any] = {
            vol.Optional(
                CONF_DEBOUNCE_MS,
                default=options.get(CONF_DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=1000)),
            vol.Optional(
                CONF_WRITE_RETRY_MS,
                default=options.get(CONF_WRITE_RETRY_MS, DEFAULT_WRITE_RETRY_MS),
            ): vol.All(vol.Coerce(int), vol.Range(min=10, max=5000)),
            vol.Optional(
                CONF_READBACK_DELAY_MS,
                default=options.get(CONF_READBACK_DELAY_MS, DEFAULT_READBACK_DELAY_MS),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=5000)),
            vol.Optional(
                CONF_READBACK_ATTEMPTS,
                default=options.get(CONF_READBACK_ATTEMPTS, DEFAULT_READBACK_ATTEMPTS),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=20)),
            vol.Optional(
                CONF_STATE_TIMEOUT_MS,
                default=options.get(CONF_STATE_TIMEOUT_MS, DEFAULT_STATE_TIMEOUT_MS),
            ): vol.All(vol.Coerce(int), vol.Range(min=100, max=10000)),
            vol.Optional(
                CONF_WRITE_TIMEOUT_MS,
                default=options.get(CONF_WRITE_TIMEOUT_MS, DEFAULT_WRITE_TIMEOUT_MS),
            ): vol.All(vol.Coerce(int), vol.Range(min=50, max=5000)),
            vol.Optional(
                CONF_DISCONNECT_DELAY,
                default=options.get(CONF_DISCONNECT_DELAY, DEFAULT_DISCONNECT_DELAY),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=300)),
            vol.Optional(
                CONF_COLOR_WHITE_THRESHOLD,
                default=options.get(
                    CONF_COLOR_WHITE_THRESHOLD, DEFAULT_COLOR_WHITE_THRESHOLD
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=100)),
            vol.Optional(
                CONF_SIMULTANEOUS_COLOR_WHITE,
                default=options.get(
                    CONF_SIMULTANEOUS_COLOR_WHITE, DEFAULT_SIMULTANEOUS_COLOR_WHITE
                ),
            ): bool,
        }

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(schema_dict),
        )
