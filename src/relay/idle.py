"""Idle shutdown — stop the process after a quiet period with no requests."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum

import structlog

from src.relay.exceptions import ShutdownTimeoutError

logger = structlog.get_logger(__name__)

DrainFn = Callable[[], Awaitable[None]]


class IdleState(StrEnum):
    NEW = "new"
    ARMED = "armed"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class IdleShutdownScheduler:
    """Background task that drains the server once no request arrived for ``idle_secs``.

    Request handlers call :meth:`notify_activity` (non-blocking); the task
    is the only code that touches the deadline. Every signal moves the
    deadline to ``signal time + idle_secs``.

    Usage::

        scheduler = IdleShutdownScheduler(60, drain=runner.cleanup)
        await scheduler.start()
        await scheduler.await_shutdown()  # raises ShutdownTimeoutError on a hung drain
    """

    def __init__(
        self,
        idle_secs: float,
        drain: DrainFn,
        drain_timeout_secs: float = 2.0,
    ) -> None:
        if idle_secs <= 0:
            raise ValueError("idle_secs must be positive")
        self._idle_secs = idle_secs
        self._drain = drain
        self._drain_timeout_secs = drain_timeout_secs
        self._activity = asyncio.Event()
        self._done = asyncio.Event()
        self._last_activity = 0.0
        self._deadline = 0.0
        self._state = IdleState.NEW
        self._error: ShutdownTimeoutError | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> IdleState:
        return self._state

    @property
    def shutting_down(self) -> bool:
        return self._state in (IdleState.SHUTTING_DOWN, IdleState.STOPPED)

    @property
    def deadline(self) -> float:
        """Monotonic time at which shutdown begins (while armed)."""
        return self._deadline

    async def start(self) -> None:
        if self._task is not None:
            return
        self._deadline = time.monotonic() + self._idle_secs
        self._state = IdleState.ARMED
        self._task = asyncio.create_task(self._loop())
        logger.info("idle_shutdown_armed", idle_secs=self._idle_secs)

    def notify_activity(self) -> None:
        """Record that a request was handled."""
        if self.shutting_down:
            return
        self._last_activity = time.monotonic()
        self._activity.set()

    async def await_shutdown(self) -> None:
        """Block until the idle drain has finished."""
        await self._done.wait()
        if self._error is not None:
            raise self._error

    async def stop(self) -> None:
        """Cancel the timer without draining (external shutdown path)."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._state = IdleState.STOPPED
        self._done.set()

    # ── Internal loop ───────────────────────────────────────────

    async def _loop(self) -> None:
        while True:
            remaining = self._deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                await asyncio.wait_for(self._activity.wait(), timeout=remaining)
            except TimeoutError:
                break
            self._activity.clear()
            self._deadline = self._last_activity + self._idle_secs
            logger.debug("idle_deadline_reset", exit_in_secs=self._idle_secs)

        await self._shutdown()

    async def _shutdown(self) -> None:
        self._state = IdleState.SHUTTING_DOWN
        logger.info("idle_shutdown", idle_secs=self._idle_secs)
        try:
            await asyncio.wait_for(self._drain(), timeout=self._drain_timeout_secs)
        except TimeoutError:
            self._error = ShutdownTimeoutError(
                f"server did not drain within {self._drain_timeout_secs}s"
            )
            logger.critical("idle_shutdown_drain_timeout", timeout_secs=self._drain_timeout_secs)
        except Exception:
            logger.exception("idle_shutdown_drain_error")
        self._state = IdleState.STOPPED
        self._done.set()
