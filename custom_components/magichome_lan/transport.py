"""TCP transport for MagicHome LAN bulbs.

Keeps one stream open to the bulb, closes it after an idle delay and
reconnects on demand. Every call carries its own timeout; failures are
logged and reported as False/None so callers can recover.
"""
from __future__ import annotations

import asyncio
import logging

from .const import (
    DEFAULT_DISCONNECT_DELAY,
    DEFAULT_PORT,
    DEFAULT_STATE_TIMEOUT_MS,
    DEFAULT_WRITE_TIMEOUT_MS,
    STATE_RESPONSE_LEN,
)
from .exceptions import MagicHomeConnectionError, MagicHomeError, MagicHomeProtocolError
from . import protocol

_LOGGER = logging.getLogger(__name__)

TRANSPORT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncio.IncompleteReadError,
    MagicHomeError,
)


class MagicHomeTransport:
    """Point-to-point connection to one bulb."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        name: str | None = None,
        disconnect_delay: float = DEFAULT_DISCONNECT_DELAY,
    ) -> None:
        """Initialize the transport.

        Args:
            host: IP address or hostname of the bulb
            port: TCP port (5577 on stock firmware)
            name: Name used in log lines
            disconnect_delay: Seconds of inactivity before the stream is closed
        """
        self._host = host
        self._port = port
        self._name = name or host
        self._disconnect_delay = disconnect_delay

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._disconnect_timer: asyncio.TimerHandle | None = None
        self._connect_lock = asyncio.Lock()
        self._io_lock = asyncio.Lock()

    @property
    def host(self) -> str:
        """Return the bulb address."""
        return self._host

    @property
    def is_connected(self) -> bool:
        """Return True if a stream is open."""
        return self._writer is not None and not self._writer.is_closing()

    async def _ensure_connected(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Ensure we have an open stream to the bulb."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
            self._disconnect_timer = None

        async with self._connect_lock:
            if not self.is_connected:
                _LOGGER.debug("Connecting to %s (%s:%s)", self._name, self._host, self._port)
                try:
                    self._reader, self._writer = await asyncio.open_connection(
                        self._host, self._port
                    )
                except OSError as ex:
                    self._reader = self._writer = None
                    raise MagicHomeConnectionError(
                        f"Cannot connect to {self._name} ({self._host}:{self._port}): {ex}"
                    ) from ex

        self._schedule_disconnect()
        return self._reader, self._writer

    def _schedule_disconnect(self) -> None:
        """Schedule a disconnection after the idle delay."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
        if not self._disconnect_delay:
            return
        self._disconnect_timer = asyncio.get_running_loop().call_later(
            self._disconnect_delay,
            lambda: asyncio.create_task(self._disconnect()),
        )

    async def _disconnect(self) -> None:
        """Close the stream."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
            self._disconnect_timer = None
        writer = self._writer
        self._reader = self._writer = None
        if writer is None:
            return
        _LOGGER.debug("Disconnecting from %s", self._name)
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as ex:
            _LOGGER.debug("Error closing connection to %s: %s", self._name, ex)

    async def _write(self, command: bytes, use_checksum: bool) -> asyncio.StreamReader:
        reader, writer = await self._ensure_connected()
        packet = protocol.append_checksum(command) if use_checksum else bytes(command)
        _LOGGER.debug("Sending to %s: %s", self._name, protocol.format_hex(packet))
        writer.write(packet)
        await writer.drain()
        return reader

    async def send(
        self,
        command: bytes,
        use_checksum: bool = True,
        timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS,
    ) -> bool:
        """Send a command frame.

        Args:
            command: Frame bytes without checksum
            use_checksum: Append the checksum byte before sending
            timeout_ms: Give up after this many milliseconds

        Returns:
            True if the frame was written, False on error or timeout
        """
        async with self._io_lock:
            try:
                await asyncio.wait_for(
                    self._write(command, use_checksum), timeout=timeout_ms / 1000
                )
                return True
            except TRANSPORT_ERRORS as ex:
                _LOGGER.error(
                    "Failed to send command to %s: %s", self._name, str(ex) or type(ex).__name__
                )
                await self._disconnect()
                return False

    async def _query_state(self) -> protocol.DeviceState:
        reader = await self._write(protocol.build_state_query(), use_checksum=True)
        data = await reader.readexactly(STATE_RESPONSE_LEN)
        _LOGGER.debug("State from %s: %s", self._name, protocol.format_hex(data))
        state = protocol.parse_state_response(data)
        if state is None:
            raise MagicHomeProtocolError(
                f"Invalid state response from {self._name}: {protocol.format_hex(data)}"
            )
        return state

    async def get_state(
        self, timeout_ms: int = DEFAULT_STATE_TIMEOUT_MS
    ) -> protocol.DeviceState | None:
        """Read the bulb state.

        Returns:
            Parsed state, or None on timeout/error
        """
        async with self._io_lock:
            try:
                return await asyncio.wait_for(self._query_state(), timeout=timeout_ms / 1000)
            except TRANSPORT_ERRORS as ex:
                _LOGGER.debug(
                    "State query failed for %s: %s", self._name, str(ex) or type(ex).__name__
                )
                # The stream may hold a partial answer; start clean next time
                await self._disconnect()
                return None

    async def async_probe(self, timeout_ms: int = DEFAULT_STATE_TIMEOUT_MS) -> protocol.DeviceState:
        """Read the state once, raising if the bulb does not answer."""
        state = await self.get_state(timeout_ms)
        if state is None:
            raise MagicHomeConnectionError(
                f"No response from {self._name} ({self._host}:{self._port})"
            )
        return state

    async def stop(self) -> None:
        """Close the connection."""
        _LOGGER.debug("%s: Stop", self._name)
        await self._disconnect()
