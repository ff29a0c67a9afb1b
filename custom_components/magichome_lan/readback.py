"""Post-write read-back of the bulb state."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .const import (
    DEFAULT_READBACK_ATTEMPTS,
    DEFAULT_READBACK_DELAY_MS,
    DEFAULT_STATE_TIMEOUT_MS,
)
from .state import LightReport, LightState
from .transport import MagicHomeTransport

_LOGGER = logging.getLogger(__name__)


class ReadbackSynchronizer:
    """Resynchronizes the cached state from a genuine device read.

    Reads straight after a write return the previous levels, so a sync
    waits for the settle delay before polling.
    """

    def __init__(
        self,
        name: str,
        state: LightState,
        transport: MagicHomeTransport,
        notify: Callable[[LightReport], None],
        settle_delay_ms: int = DEFAULT_READBACK_DELAY_MS,
        attempts: int = DEFAULT_READBACK_ATTEMPTS,
        timeout_ms: int = DEFAULT_STATE_TIMEOUT_MS,
    ) -> None:
        self._name = name
        self._state = state
        self._transport = transport
        self._notify = notify
        self.settle_delay_ms = settle_delay_ms
        self.attempts = max(1, attempts)
        self.timeout_ms = timeout_ms

    async def async_sync_after_write(self) -> bool:
        """Wait for the bulb to settle, then refresh."""
        _LOGGER.debug(
            "Waiting %s ms for %s to apply the write", self.settle_delay_ms, self._name
        )
        await asyncio.sleep(self.settle_delay_ms / 1000)
        return await self.async_refresh()

    async def async_refresh(self) -> bool:
        """Poll the bulb and push the result to the host.

        Returns:
            True if the bulb answered, False if it was reported as off
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        device_state = None
        tries = 0
        while device_state is None and tries < self.attempts:
            device_state = await self._transport.get_state(self.timeout_ms)
            tries += 1
        elapsed_ms = round((loop.time() - started) * 1000)
        _LOGGER.debug(
            "Network access for %s took %s ms (tries: %s)", self._name, elapsed_ms, tries
        )

        if device_state is None:
            _LOGGER.error(
                "No device response from %s (%s) after %s tries, reporting it as off",
                self._name,
                self._transport.host,
                tries,
            )
            self._state.is_on = False
            self._state.refresh_brightness()
            self._notify(self._state.report())
            return False

        self._state.apply_device_state(device_state)
        red, green, blue = device_state.rgb
        warm, cold = device_state.white_values
        _LOGGER.debug(
            "Reporting %s: on=%s mode=%s r=%s g=%s b=%s ww=%s cw=%s bri=%s",
            self._name,
            self._state.is_on,
            self._state.operating_mode.value,
            red,
            green,
            blue,
            warm,
            cold,
            self._state.brightness,
        )
        self._notify(self._state.report())
        return True
