"""Helpers shared by the MagicHome LAN tests."""
from __future__ import annotations

import asyncio
from collections import deque
from typing import Iterable

from custom_components.magichome_lan.color import RGB, WhiteValues
from custom_components.magichome_lan.const import OperatingMode
from custom_components.magichome_lan.protocol import DeviceState, append_checksum

HOST = "192.168.1.50"


class FakeTransport:
    """In-memory transport recording every write."""

    def __init__(self, states: Iterable[DeviceState | None] = (), host: str = HOST) -> None:
        self.host = host
        self.sent: list[tuple[bytes, bool, int]] = []
        self.states: deque[DeviceState | None] = deque(states)
        self.state_requests = 0
        self.send_result = True
        self.send_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.stopped = False

    @property
    def commands(self) -> list[bytes]:
        return [command for command, _, _ in self.sent]

    async def send(self, command: bytes, use_checksum: bool = True, timeout_ms: int = 200) -> bool:
        self.sent.append((bytes(command), use_checksum, timeout_ms))
        if self.send_error is not None:
            raise self.send_error
        if self.gate is not None:
            await self.gate.wait()
        return self.send_result

    async def get_state(self, timeout_ms: int = 1000) -> DeviceState | None:
        self.state_requests += 1
        if self.states:
            return self.states.popleft()
        return None

    async def stop(self) -> None:
        self.stopped = True


def make_device_state(
    rgb: tuple[int, int, int] = (0, 0, 0),
    whites: tuple[int, int] = (0, 0),
    is_on: bool = True,
    mode: OperatingMode = OperatingMode.COLOR,
) -> DeviceState:
    """Build a DeviceState as the transport would return it."""
    return DeviceState(RGB(*rgb), WhiteValues(*whites), is_on, mode)


def make_state_response(
    rgb: tuple[int, int, int] = (0, 0, 0),
    whites: tuple[int, int] = (0, 0),
    is_on: bool = True,
    color_mode: int = 0xF0,
    model: int = 0x44,
    version: int = 0x05,
) -> bytes:
    """Build a 14-byte 0x81 state response with a valid checksum."""
    red, green, blue = rgb
    warm, cold = whites
    body = bytes(
        [
            0x81,
            model,
            0x23 if is_on else 0x24,
            0x61,
            0x21,
            0x10,
            red,
            green,
            blue,
            warm,
            version,
            cold,
            color_mode,
        ]
    )
    return append_checksum(body)


