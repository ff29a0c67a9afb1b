"""Light platform for the MagicHome LAN integration."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.light import (
    ATTR_BRIGHTNESS,
    ATTR_COLOR_TEMP_KELVIN,
    ATTR_EFFECT,
    ATTR_FLASH,
    ATTR_HS_COLOR,
    ColorMode,
    LightEntity,
    LightEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util.color import (
    color_temperature_kelvin_to_mired,
    color_temperature_mired_to_kelvin,
)

from .const import DOMAIN, EFFECT_FLASH, MANUFACTURER, MAX_MIRED, MIN_MIRED, OperatingMode
from .device import MagicHomeDevice
from .state import LightReport

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the light platform."""
    device: MagicHomeDevice = hass.data[DOMAIN][entry.entry_id]

    async_add_entities([MagicHomeLight(device, entry)])


class MagicHomeLight(LightEntity):
    """Representation of a MagicHome bulb."""

    _attr_has_entity_name = True
    _attr_name = None  # Use device name
    _attr_supported_color_modes = {ColorMode.HS, ColorMode.COLOR_TEMP}
    _attr_supported_features = LightEntityFeature.EFFECT | LightEntityFeature.FLASH
    _attr_min_color_temp_kelvin = round(color_temperature_mired_to_kelvin(MAX_MIRED))
    _attr_max_color_temp_kelvin = round(color_temperature_mired_to_kelvin(MIN_MIRED))

    def __init__(self, device: MagicHomeDevice, entry: ConfigEntry) -> None:
        """Initialize the light."""
        self._device = device
        self._entry = entry
        self._attr_unique_id = entry.unique_id or device.host

    async def async_added_to_hass(self) -> None:
        """Subscribe to read-back results."""
        self._device.register_callback(self._handle_state_update)

    async def async_will_remove_from_hass(self) -> None:
        """Handle entity removal."""
        self._device.unregister_callback(self._handle_state_update)

    @callback
    def _handle_state_update(self, report: LightReport) -> None:
        """Handle state updates from the device."""
        self.async_write_ha_state()

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info."""
        return DeviceInfo(
            identifiers={(DOMAIN, self._device.host)},
            name=self._device.name,
            manufacturer=MANUFACTURER,
            model="LAN bulb",
        )

    @property
    def is_on(self) -> bool:
        """Return True if light is on."""
        return self._device.is_on

    @property
    def brightness(self) -> int:
        """Return the brightness (0-255)."""
        return round(self._device.brightness * 255 / 100)

    @property
    def hs_color(self) -> tuple[float, float]:
        return self._device.hs_color

    @property
    def color_temp_kelvin(self) -> int | None:
        mired = self._device.color_temperature_mired
        if not mired:
            return None
        return round(color_temperature_mired_to_kelvin(mired))

    @property
    def color_mode(self) -> ColorMode:
        """Return current color mode."""
        if (
            self._device.operating_mode is OperatingMode.TEMPERATURE
            and self._device.color_temperature_mired
        ):
            return ColorMode.COLOR_TEMP
        return ColorMode.HS

    @property
    def effect_list(self) -> list[str]:
        return self._device.effect_list

    @property
    def effect(self) -> str | None:
        return self._device.effect

    async def async_update(self) -> None:
        """Poll the bulb."""
        await self._device.async_update()

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn the light on.

        Every attribute is queued separately; the device coalesces them
        into a single write.
        """
        _LOGGER.debug("turn_on called with kwargs: %s", kwargs)

        if ATTR_FLASH in kwargs:
            await self._device.async_set_effect(EFFECT_FLASH)
            return

        if effect := kwargs.get(ATTR_EFFECT):
            await self._device.async_set_effect(effect)
            return

        self._device.set_on(True)

        if ATTR_HS_COLOR in kwargs:
            hue, saturation = kwargs[ATTR_HS_COLOR]
            self._device.set_hue(hue)
            self._device.set_saturation(saturation)

        if ATTR_COLOR_TEMP_KELVIN in kwargs:
            self._device.set_color_temperature(
                color_temperature_kelvin_to_mired(kwargs[ATTR_COLOR_TEMP_KELVIN])
            )

        if ATTR_BRIGHTNESS in kwargs:
            self._device.set_brightness(kwargs[ATTR_BRIGHTNESS] * 100 / 255)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn the light off."""
        self._device.set_on(False)
