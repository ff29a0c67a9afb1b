"""Tests for the post-write read-back."""
from __future__ import annotations

import logging

import pytest

from custom_components.magichome_lan.const import MAX_MIRED, OperatingMode
from custom_components.magichome_lan.readback import ReadbackSynchronizer
from custom_components.magichome_lan.state import LightReport, LightState

from .common import FakeTransport, make_device_state


def _make_synchronizer(
    transport: FakeTransport, attempts: int = 5
) -> tuple[ReadbackSynchronizer, LightState, list[LightReport]]:
    state = LightState()
    reports: list[LightReport] = []
    synchronizer = ReadbackSynchronizer(
        "Test bulb",
        state,
        transport,
        reports.append,
        settle_delay_ms=0,
        attempts=attempts,
        timeout_ms=50,
    )
    return synchronizer, state, reports


async def test_no_response_reports_off(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport()
    synchronizer, state, reports = _make_synchronizer(transport)

    assert await synchronizer.async_sync_after_write() is False

    assert transport.state_requests == 5
    assert state.is_on is False
    assert state.brightness == 0
    assert len(reports) == 1
    assert reports[0].is_on is False
    assert reports[0].brightness == 0
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "No device response" in errors[0].getMessage()


async def test_stops_polling_on_first_answer(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport([None, None, make_device_state(rgb=(0, 0, 255))])
    synchronizer, state, reports = _make_synchronizer(transport)

    assert await synchronizer.async_refresh() is True

    assert transport.state_requests == 3
    assert state.hsl.hue == pytest.approx(240)
    assert state.brightness == 100
    assert reports == [state.report()]
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


async def test_off_bulb_keeps_color() -> None:
    transport = FakeTransport([make_device_state(rgb=(255, 0, 0), is_on=False)])
    synchronizer, state, reports = _make_synchronizer(transport)

    await synchronizer.async_refresh()

    assert state.is_on is False
    assert state.brightness == 0
    assert state.hsl.luminance == pytest.approx(50)
    assert reports[0].saturation == 100


async def test_white_bank_state() -> None:
    transport = FakeTransport(
        [make_device_state(whites=(255, 0), mode=OperatingMode.WHITE)]
    )
    synchronizer, state, reports = _make_synchronizer(transport)
    state.hsl = state.hsl._replace(hue=33)

    await synchronizer.async_refresh()

    assert state.operating_mode is OperatingMode.WHITE
    assert state.hsl.hue == 33
    assert state.brightness == 100
    assert reports[0].color_temperature_mired == MAX_MIRED


async def test_attempts_are_bounded() -> None:
    transport = FakeTransport([None, None, make_device_state()])
    synchronizer, state, _ = _make_synchronizer(transport, attempts=2)

    assert await synchronizer.async_refresh() is False
    assert transport.state_requests == 2
