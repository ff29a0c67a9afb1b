"""Tests for the MagicHome device."""
from __future__ import annotations

import asyncio
import logging

import pytest

from custom_components.magichome_lan.color import hsl_to_rgb
from custom_components.magichome_lan.const import (
    EFFECT_FLASH,
    FLASH_STEPS,
    MAX_MIRED,
    MIN_MIRED,
    PRESET_PATTERNS,
    OperatingMode,
)
from custom_components.magichome_lan.device import MagicHomeDevice
from custom_components.magichome_lan.protocol import build_color_command, build_power_command
from custom_components.magichome_lan.state import LightReport

from .common import FakeTransport, make_device_state


def _make_device(transport: FakeTransport) -> MagicHomeDevice:
    return MagicHomeDevice(
        transport,
        "Test bulb",
        debounce_ms=1,
        write_retry_ms=20,
        readback_delay_ms=0,
        readback_attempts=2,
        state_timeout_ms=50,
        flash_interval_ms=0,
    )


async def _settle(device: MagicHomeDevice) -> None:
    await asyncio.sleep(0.02)
    await device._coalescer.async_wait_idle()


async def test_setters_clamp_input() -> None:
    transport = FakeTransport()
    device = _make_device(transport)

    device.set_hue(400)
    device.set_saturation(-3)
    device.set_brightness(180)
    device.set_color_temperature(20)

    pending = device.state.pending
    assert pending.hue == 360
    assert pending.saturation == 0
    assert pending.brightness == 100
    assert pending.color_temperature == MIN_MIRED
    assert pending.mode is OperatingMode.TEMPERATURE

    device.set_color_temperature(9000)
    assert device.state.pending.color_temperature == MAX_MIRED
    await device.stop()


async def test_turn_on_with_brightness_is_one_write() -> None:
    transport = FakeTransport([make_device_state(rgb=(128, 0, 0))])
    device = _make_device(transport)
    device.state.is_on = False
    device.state.brightness = 0

    device.set_on(True)
    device.set_brightness(50)
    await _settle(device)

    assert transport.commands == [build_color_command(hsl_to_rgb(0, 100, 50), 50)]
    assert device.is_on is True
    await device.stop()


async def test_callbacks_receive_reports(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport([make_device_state(rgb=(0, 255, 0))])
    device = _make_device(transport)
    received: list[LightReport] = []

    def _broken(report: LightReport) -> None:
        raise ValueError("broken listener")

    device.register_callback(_broken)
    device.register_callback(received.append)

    device.set_hue(120)
    await _settle(device)

    assert len(received) == 1
    assert received[0].hue == pytest.approx(120)
    assert "Error in callback for Test bulb" in caplog.text

    device.unregister_callback(received.append)
    device.unregister_callback(_broken)
    await device.async_update()
    assert len(received) == 1
    await device.stop()


async def test_update_is_throttled() -> None:
    transport = FakeTransport([make_device_state(), make_device_state()])
    device = _make_device(transport)

    await device.async_update()
    await device.async_update()

    assert transport.state_requests == 1
    await device.stop()


async def test_update_skipped_while_committing() -> None:
    transport = FakeTransport([make_device_state()])
    transport.gate = asyncio.Event()
    device = _make_device(transport)

    device.set_hue(10)
    await asyncio.sleep(0.01)
    assert device.is_committing

    await device.async_update()
    assert transport.state_requests == 0

    transport.gate.set()
    await _settle(device)
    await device.stop()


async def test_preset_pattern() -> None:
    transport = FakeTransport()
    device = _make_device(transport)

    assert await device.async_set_effect("Red Strobe Flash", speed=100)

    assert transport.commands == [bytes([0x61, PRESET_PATTERNS["Red Strobe Flash"], 0x01, 0x0F])]
    assert device.effect == "Red Strobe Flash"
    await device.stop()


async def test_unknown_effect(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    transport = FakeTransport()
    device = _make_device(transport)

    assert not await device.async_set_effect("Disco")
    assert transport.sent == []
    assert "unknown effect" in caplog.text
    await device.stop()


async def test_flash_restores_previous_color() -> None:
    transport = FakeTransport([make_device_state(rgb=(0, 0, 255))])
    device = _make_device(transport)
    device.state.hsl = device.state.hsl._replace(hue=240)

    await device.async_flash()

    assert len(transport.sent) == FLASH_STEPS + 1
    assert transport.commands[0] == build_color_command(hsl_to_rgb(100, 100, 50), 0)
    assert transport.commands[1] == build_color_command(hsl_to_rgb(100, 100, 50), 100)
    assert transport.commands[-1] == build_color_command(hsl_to_rgb(240, 100, 50), 100)
    assert device.state.hsl.hue == pytest.approx(240)
    await device.stop()


async def test_color_request_cancels_running_flash() -> None:
    transport = FakeTransport([make_device_state()])
    device = MagicHomeDevice(
        transport, "Test bulb", debounce_ms=1, readback_delay_ms=0, flash_interval_ms=1000
    )

    assert await device.async_set_effect(EFFECT_FLASH)
    await asyncio.sleep(0)
    assert device.effect == EFFECT_FLASH

    device.set_hue(10)
    await asyncio.sleep(0.01)
    assert device.effect is None
    await device._coalescer.async_wait_idle()
    await device.stop()


async def test_turn_off_stops_running_flash() -> None:
    transport = FakeTransport([make_device_state(is_on=False)])
    device = MagicHomeDevice(
        transport, "Test bulb", debounce_ms=1, readback_delay_ms=0, flash_interval_ms=5
    )

    assert await device.async_set_effect(EFFECT_FLASH)
    await asyncio.sleep(0.012)
    device.set_on(False)
    assert device.effect is None

    await asyncio.sleep(0.05)
    await device._coalescer.async_wait_idle()
    await asyncio.sleep(0.02)

    off = build_power_command(False)
    assert transport.commands.count(off) == 1
    assert transport.commands[-1] == off
    assert device.is_on is False
    await device.stop()


async def test_turn_off_clears_preset_pattern() -> None:
    transport = FakeTransport([make_device_state(is_on=False)])
    device = _make_device(transport)

    assert await device.async_set_effect("Seven Color Cross Fade")
    assert device.effect == "Seven Color Cross Fade"

    device.set_on(False)
    await _settle(device)

    assert device.effect is None
    assert transport.commands[-1] == build_power_command(False)
    await device.stop()


async def test_restarted_flash_keeps_its_handle() -> None:
    transport = FakeTransport()
    device = MagicHomeDevice(transport, "Test bulb", write_retry_ms=5, flash_interval_ms=1000)

    assert await device.async_set_effect(EFFECT_FLASH)
    await asyncio.sleep(0.01)
    assert await device.async_set_effect(EFFECT_FLASH)
    await asyncio.sleep(0.02)

    assert device._effect_task is not None
    assert not device._effect_task.done()
    assert device.effect == EFFECT_FLASH

    flash = device._effect_task
    device.set_hue(10)
    await asyncio.sleep(0)
    assert flash.cancelled()
    assert device._effect_task is None
    assert device.effect is None
    await device.stop()


async def test_flash_holds_commit_guard() -> None:
    transport = FakeTransport([make_device_state()])
    device = MagicHomeDevice(transport, "Test bulb", flash_interval_ms=1000)

    assert await device.async_set_effect(EFFECT_FLASH)
    await asyncio.sleep(0.01)
    assert device.is_committing

    await device.async_update()
    assert transport.state_requests == 0

    await device.stop()
    assert not device.is_committing


async def test_dim_brightness_stays_lit() -> None:
    transport = FakeTransport()
    device = _make_device(transport)

    device.set_brightness(1 * 100 / 255)
    assert device.state.pending.brightness == 1
    assert device.brightness == 1

    device.set_brightness(0)
    assert device.state.pending.brightness == 0
    await device.stop()



async def test_stop_closes_transport() -> None:
    transport = FakeTransport()
    device = _make_device(transport)
    device.set_hue(5)

    await device.stop()

    assert transport.stopped
    assert transport.sent == []
