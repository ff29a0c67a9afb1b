"""Coalesces bursts of host requests into single bulb writes."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
import logging
from typing import AsyncIterator

from .const import (
    DEFAULT_COLOR_WHITE_THRESHOLD,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_SIMULTANEOUS_COLOR_WHITE,
    DEFAULT_WRITE_RETRY_MS,
    DEFAULT_WRITE_TIMEOUT_MS,
)
from .protocol import format_hex
from .readback import ReadbackSynchronizer
from .state import LightState, PendingTarget
from .state_machine import Transition, classify, command_for
from .transport import MagicHomeTransport

_LOGGER = logging.getLogger(__name__)


class SessionState(Enum):
    """Commit guard token."""

    IDLE = "idle"
    COMMITTING = "committing"


@dataclass
class CommitSession:
    """Per-device debounce and in-flight bookkeeping."""

    state: SessionState = SessionState.IDLE
    debounce_timer: asyncio.TimerHandle | None = None
    recheck_timer: asyncio.TimerHandle | None = None
    burst_started: float | None = None
    last_submit: float | None = None
    writes: int = 0

    @property
    def is_committing(self) -> bool:
        return self.state is SessionState.COMMITTING

    def cancel_timers(self) -> None:
        for timer in (self.debounce_timer, self.recheck_timer):
            if timer is not None:
                timer.cancel()
        self.debounce_timer = None
        self.recheck_timer = None


class RequestCoalescer:
    """Debounces requests and commits them one at a time.

    Host frameworks often send "turn on" and "set brightness" as separate
    calls a few milliseconds apart. Each call is merged into the pending
    target and the commit only runs once the calls stop arriving. While a
    commit is in flight, later timers defer through a single recheck.
    """

    def __init__(
        self,
        name: str,
        state: LightState,
        transport: MagicHomeTransport,
        readback: ReadbackSynchronizer,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        write_retry_ms: int = DEFAULT_WRITE_RETRY_MS,
        write_timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS,
        color_white_threshold: float = DEFAULT_COLOR_WHITE_THRESHOLD,
        simultaneous_color_white: bool = DEFAULT_SIMULTANEOUS_COLOR_WHITE,
    ) -> None:
        self._name = name
        self._state = state
        self._transport = transport
        self._readback = readback
        self.debounce_ms = debounce_ms
        self.write_retry_ms = write_retry_ms
        self.write_timeout_ms = write_timeout_ms
        self.color_white_threshold = color_white_threshold
        self.simultaneous_color_white = simultaneous_color_white

        self.session = CommitSession()
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_committing(self) -> bool:
        return self.session.is_committing

    def submit(self, delta: PendingTarget) -> None:
        """Merge a request into the pending target and restart the debounce."""
        loop = asyncio.get_running_loop()
        session = self.session
        now = loop.time()

        self._state.pending.merge(delta)
        if session.debounce_timer is None:
            session.burst_started = now
        else:
            session.debounce_timer.cancel()
        session.last_submit = now
        _LOGGER.debug(
            "%s: queued %s (burst age %.1f ms)",
            self._name,
            sorted(delta.set_fields()),
            (now - session.burst_started) * 1000,
        )
        session.debounce_timer = loop.call_later(
            self.debounce_ms / 1000, self._on_debounce
        )

    def _on_debounce(self) -> None:
        self.session.debounce_timer = None
        self._try_commit()

    def _on_recheck(self) -> None:
        self.session.recheck_timer = None
        self._try_commit()

    def _try_commit(self) -> None:
        if self.session.is_committing:
            self._defer()
            return
        # Guard is taken before the task runs; a timer firing in between defers
        self.session.state = SessionState.COMMITTING
        task = asyncio.get_running_loop().create_task(self._async_commit())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _defer(self) -> None:
        session = self.session
        if session.recheck_timer is not None:
            _LOGGER.debug("%s: recheck already scheduled", self._name)
            return
        _LOGGER.warning(
            "%s: write in progress, retrying in %s ms", self._name, self.write_retry_ms
        )
        session.recheck_timer = asyncio.get_running_loop().call_later(
            self.write_retry_ms / 1000, self._on_recheck
        )

    async def _async_commit(self) -> None:
        session = self.session
        session.state = SessionState.COMMITTING
        try:
            applied = self._state.pending.copy()
            transition = classify(self._state)
            _LOGGER.debug(
                "%s: committing %s %s",
                self._name,
                transition.value,
                sorted(applied.set_fields()),
            )

            if transition is Transition.UNCHANGED:
                _LOGGER.warning("%s: timer fired with nothing to write", self._name)
                self._state.pending.clear()
                return

            if transition is Transition.REDUNDANT:
                _LOGGER.debug(
                    "%s: already %s, nothing to send",
                    self._name,
                    "on" if self._state.is_on else "off",
                )
                self._state.pending.discard(applied)
                return

            command = command_for(
                transition,
                self._state,
                self.color_white_threshold,
                self.simultaneous_color_white,
            )
            _LOGGER.debug("%s: writing %s", self._name, format_hex(command))
            if await self._transport.send(
                command, use_checksum=True, timeout_ms=self.write_timeout_ms
            ):
                session.writes += 1
            await self._readback.async_sync_after_write()
            self._state.pending.discard(applied)
        except Exception:
            _LOGGER.exception("%s: error while committing", self._name)
        finally:
            session.state = SessionState.IDLE

    @asynccontextmanager
    async def async_hold(self) -> AsyncIterator[None]:
        """Hold the commit guard for writes made outside the commit pipeline.

        Waits for a running commit to finish first. Debounce timers that fire
        while the guard is held defer through the usual recheck.
        """
        session = self.session
        while session.is_committing:
            await asyncio.sleep(self.write_retry_ms / 1000)
        session.state = SessionState.COMMITTING
        try:
            yield
        finally:
            session.state = SessionState.IDLE

    async def async_wait_idle(self) -> None:
        """Wait for commits that are already running."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def stop(self) -> None:
        """Cancel timers and running commits."""
        self.session.cancel_timers()
        for task in self._tasks:
            task.cancel()
        self.session.state = SessionState.IDLE
