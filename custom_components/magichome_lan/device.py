"""Device class for MagicHome LAN bulbs.

Owns the cached state of one bulb and routes host requests through the
request coalescer. Results of every read-back are pushed to the
registered callbacks.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .coalescer import RequestCoalescer
from .color import HSL, clamp, hsl_to_rgb
from .const import (
    DEFAULT_COLOR_WHITE_THRESHOLD,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_READBACK_ATTEMPTS,
    DEFAULT_READBACK_DELAY_MS,
    DEFAULT_SIMULTANEOUS_COLOR_WHITE,
    DEFAULT_STATE_TIMEOUT_MS,
    DEFAULT_WRITE_RETRY_MS,
    DEFAULT_WRITE_TIMEOUT_MS,
    EFFECT_FLASH,
    FLASH_INTERVAL_MS,
    FLASH_STEPS,
    MAX_MIRED,
    MIN_MIRED,
    PRESET_PATTERNS,
    STATUS_POLL_INTERVAL_MS,
    OperatingMode,
)
from .readback import ReadbackSynchronizer
from .state import LightReport, LightState, PendingTarget
from .transport import MagicHomeTransport
from . import protocol

_LOGGER = logging.getLogger(__name__)

DEFAULT_EFFECT_SPEED = 50


class MagicHomeDevice:
    """Represents a MagicHome LAN bulb."""

    def __init__(
        self,
        transport: MagicHomeTransport,
        name: str,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        write_retry_ms: int = DEFAULT_WRITE_RETRY_MS,
        readback_delay_ms: int = DEFAULT_READBACK_DELAY_MS,
        readback_attempts: int = DEFAULT_READBACK_ATTEMPTS,
        state_timeout_ms: int = DEFAULT_STATE_TIMEOUT_MS,
        write_timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS,
        color_white_threshold: float = DEFAULT_COLOR_WHITE_THRESHOLD,
        simultaneous_color_white: bool = DEFAULT_SIMULTANEOUS_COLOR_WHITE,
        flash_interval_ms: int = FLASH_INTERVAL_MS,
    ) -> None:
        """Initialize the device.

        Args:
            transport: Connection to the bulb
            name: Device name, used in log lines
            debounce_ms: Quiet period after the last request before writing
            write_retry_ms: Delay before retrying a commit that found a write in flight
            readback_delay_ms: Settle time between a write and its read-back
            readback_attempts: State reads before the bulb is reported as off
            state_timeout_ms: Timeout of a single state read
            write_timeout_ms: Timeout of a single write
            color_white_threshold: Saturation below which the white bank is used
            simultaneous_color_white: Drive both LED banks for near-white colors
            flash_interval_ms: Step length of the flash effect
        """
        self._transport = transport
        self._name = name
        self._write_timeout_ms = write_timeout_ms
        self._flash_interval_ms = flash_interval_ms

        self._state = LightState()
        self._effect: str | None = None
        self._effect_task: asyncio.Task | None = None
        self._last_poll: float | None = None

        # Callbacks for state updates
        self._callbacks: list[Callable[[LightReport], None]] = []

        self._readback = ReadbackSynchronizer(
            name,
            self._state,
            transport,
            self._notify_callbacks,
            settle_delay_ms=readback_delay_ms,
            attempts=readback_attempts,
            timeout_ms=state_timeout_ms,
        )
        self._coalescer = RequestCoalescer(
            name,
            self._state,
            transport,
            self._readback,
            debounce_ms=debounce_ms,
            write_retry_ms=write_retry_ms,
            write_timeout_ms=write_timeout_ms,
            color_white_threshold=color_white_threshold,
            simultaneous_color_white=simultaneous_color_white,
        )

        _LOGGER.debug(
            "Device initialized: %s (%s), debounce=%sms, readback=%sms x%s, white_threshold=%s",
            name,
            transport.host,
            debounce_ms,
            readback_delay_ms,
            readback_attempts,
            color_white_threshold,
        )

    @property
    def name(self) -> str:
        """Return the device name."""
        return self._name

    @property
    def host(self) -> str:
        """Return the bulb address."""
        return self._transport.host

    @property
    def state(self) -> LightState:
        return self._state

    @property
    def report(self) -> LightReport:
        """Return the last known state as seen by the host."""
        return self._state.report()

    @property
    def is_on(self) -> bool:
        return self._state.is_on

    @property
    def brightness(self) -> int:
        """Return brightness 0-100."""
        return self._state.brightness

    @property
    def hs_color(self) -> tuple[float, float]:
        report = self._state.report()
        return report.hue, report.saturation

    @property
    def color_temperature_mired(self) -> int | None:
        return self._state.color_temperature_mired

    @property
    def operating_mode(self) -> OperatingMode:
        return self._state.operating_mode

    @property
    def effect(self) -> str | None:
        return self._effect

    @property
    def effect_list(self) -> list[str]:
        return [EFFECT_FLASH, *PRESET_PATTERNS]

    @property
    def is_committing(self) -> bool:
        """Return True while a write and its read-back are in flight."""
        return self._coalescer.is_committing

    def register_callback(self, callback_fn: Callable[[LightReport], None]) -> None:
        """Register a callback for state updates."""
        self._callbacks.append(callback_fn)

    def unregister_callback(self, callback_fn: Callable[[LightReport], None]) -> None:
        """Unregister a callback."""
        if callback_fn in self._callbacks:
            self._callbacks.remove(callback_fn)

    def _notify_callbacks(self, report: LightReport) -> None:
        """Notify all registered callbacks."""
        for callback_fn in self._callbacks:
            try:
                callback_fn(report)
            except Exception as ex:
                _LOGGER.exception("Error in callback for %s: %s", self._name, ex)

    # ----- Host setters -----

    def set_hue(self, hue: float) -> None:
        """Request a hue (0-360)."""
        hue = clamp(hue, 0, 360)
        self._state.hsl = self._state.hsl._replace(hue=hue)
        self._submit(PendingTarget(hue=hue, mode=OperatingMode.COLOR))

    def set_saturation(self, saturation: float) -> None:
        """Request a saturation (0-100)."""
        saturation = clamp(saturation, 0, 100)
        self._state.hsl = self._state.hsl._replace(saturation=saturation)
        self._submit(PendingTarget(saturation=saturation, mode=OperatingMode.COLOR))

    def set_brightness(self, brightness: float) -> None:
        """Request a brightness (0-100)."""
        brightness = clamp(brightness, 0, 100)
        # A dim but non-zero request must not round down to a dark frame
        brightness = max(1, round(brightness)) if brightness > 0 else 0
        self._state.brightness = brightness
        self._submit(PendingTarget(brightness=brightness))

    def set_on(self, on: bool) -> None:
        """Request power on or off."""
        self._submit(PendingTarget(on=bool(on)))

    def set_color_temperature(self, mired: float) -> None:
        """Request a white color temperature in mired."""
        mired = round(clamp(mired, MIN_MIRED, MAX_MIRED))
        self._submit(
            PendingTarget(color_temperature=mired, mode=OperatingMode.TEMPERATURE)
        )

    def _submit(self, delta: PendingTarget) -> None:
        if delta.set_fields() - {"on"} or delta.on is False:
            self._cancel_effect()
        self._coalescer.submit(delta)

    # ----- Status polling -----

    async def async_update(self) -> None:
        """Refresh the state from the bulb unless a write is in flight."""
        if self.is_committing:
            _LOGGER.debug("%s: write in flight, skipping poll", self._name)
            return
        now = asyncio.get_running_loop().time()
        if (
            self._last_poll is not None
            and (now - self._last_poll) * 1000 < STATUS_POLL_INTERVAL_MS
        ):
            return
        self._last_poll = now
        await self._readback.async_refresh()

    # ----- Effects -----

    def cache_snapshot(self) -> HSL:
        """Remember the current color for a later restore."""
        return self._state.cache_snapshot()

    async def async_restore_snapshot(self) -> bool:
        """Send the remembered color back to the bulb."""
        async with self._coalescer.async_hold():
            return await self._restore_snapshot()

    async def _restore_snapshot(self) -> bool:
        hsl = self._state.restore_snapshot()
        if hsl is None:
            _LOGGER.debug("%s: no snapshot to restore", self._name)
            return False
        brightness = clamp(hsl.luminance * 2, 0, 100)
        self._state.brightness = round(brightness)
        return await self._send_color(hsl.hue, hsl.saturation, brightness)

    async def _send_color(self, hue: float, saturation: float, brightness: float) -> bool:
        command = protocol.build_color_command(hsl_to_rgb(hue, saturation, 50), brightness)
        return await self._transport.send(
            command, use_checksum=True, timeout_ms=self._write_timeout_ms
        )

    async def async_flash(self) -> None:
        """Blink the bulb, then put the previous color back.

        The commit guard is held for the whole effect, so status polls and
        queued commits wait until the bulb shows its own color again.
        """
        async with self._coalescer.async_hold():
            self.cache_snapshot()
            _LOGGER.debug("%s: flashing", self._name)
            for step in range(FLASH_STEPS):
                brightness = 0 if step % 2 == 0 else 100
                await self._send_color(100, 100, brightness)
                await asyncio.sleep(self._flash_interval_ms / 1000)
            await self._restore_snapshot()
            await self._readback.async_sync_after_write()

    async def async_set_pattern(self, pattern: int, speed: int = DEFAULT_EFFECT_SPEED) -> bool:
        """Start one of the built-in patterns.

        Args:
            pattern: Pattern code 0x25-0x38
            speed: Effect speed 0-100

        Returns:
            True if the command was written
        """
        command = protocol.build_preset_pattern_command(pattern, speed)
        async with self._coalescer.async_hold():
            if not await self._transport.send(
                command, use_checksum=True, timeout_ms=self._write_timeout_ms
            ):
                return False
        self._effect = next(
            (name for name, code in PRESET_PATTERNS.items() if code == pattern), None
        )
        self._state.is_on = True
        self._notify_callbacks(self._state.report())
        return True

    async def async_set_effect(self, effect: str, speed: int = DEFAULT_EFFECT_SPEED) -> bool:
        """Start an effect by name."""
        if effect == EFFECT_FLASH:
            self._cancel_effect()
            self._effect = EFFECT_FLASH
            self._effect_task = asyncio.get_running_loop().create_task(self._async_run_flash())
            return True
        pattern = PRESET_PATTERNS.get(effect)
        if pattern is None:
            _LOGGER.warning("%s: unknown effect %s", self._name, effect)
            return False
        self._cancel_effect()
        return await self.async_set_pattern(pattern, speed)

    async def _async_run_flash(self) -> None:
        try:
            await self.async_flash()
        finally:
            # A restarted flash has already replaced the handle
            if self._effect_task is asyncio.current_task():
                self._effect = None
                self._effect_task = None

    def _cancel_effect(self) -> None:
        if self._effect_task is not None and not self._effect_task.done():
            self._effect_task.cancel()
        self._effect_task = None
        self._effect = None

    async def stop(self) -> None:
        """Cancel pending work and close the connection."""
        _LOGGER.debug("%s: Stop", self._name)
        task = self._effect_task
        self._cancel_effect()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        self._coalescer.stop()
        await self._transport.stop()
