"""Turns the engine's two racing join callbacks into one outcome.

``Idle -> Joining -> {Joined | Failed}``, then ``Left`` once the session is
stopped.  The first of join-success / join-error settles the future; every
later callback is ignored for this join.  The optional deadline is advisory
by default: it logs a :class:`~core.errors.JoinTimeout` and keeps waiting,
because the engine offers no way to cancel a join.  ``timeout_rejects=True``
makes the deadline settle the outcome instead.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from core.bus import EventBus
from core.errors import InvalidStateError, JoinError, JoinTimeout
from core.events import EventKind, SessionEvent
from sdk.ids import elapsed_ms, now_monotonic_ns

TimerFactory = Callable[[float, Callable[[], None]], Any]


class JoinState(str, Enum):
    IDLE = "Idle"
    JOINING = "Joining"
    JOINED = "Joined"
    FAILED = "Failed"
    LEFT = "Left"


class JoinArbiter:
    def __init__(
        self,
        bus: EventBus,
        channel: str,
        *,
        timeout: Optional[float] = None,
        timeout_rejects: bool = False,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.bus = bus
        self.channel = channel
        self.timeout = timeout or None
        self.timeout_rejects = timeout_rejects
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._state = JoinState.IDLE
        self._future: Optional["Future[bool]"] = None
        self._timer: Optional[Any] = None
        self._started_ns = 0
        self.timed_out = False

    @property
    def state(self) -> JoinState:
        return self._state

    @property
    def future(self) -> Optional["Future[bool]"]:
        return self._future

    def arm(self) -> "Future[bool]":
        """Enter ``Joining`` and listen for the outcome.

        Must be called before the join request is submitted, so a callback
        fired synchronously by the engine cannot be missed.
        """

        with self._lock:
            if self._state is not JoinState.IDLE:
                raise InvalidStateError(f"cannot join from state {self._state.value}")
            self._state = JoinState.JOINING
            future: "Future[bool]" = Future()
            # Running futures cannot be cancelled; neither can a native join.
            future.set_running_or_notify_cancel()
            self._future = future

        # Ahead of user subscribers, so their handlers already see Joined.
        self.bus.subscribe(self._on_joined, EventKind.JOIN_CHANNEL, first=True)
        self.bus.subscribe(self._on_error, EventKind.ERROR, first=True)
        self._started_ns = now_monotonic_ns()

        if self.timeout:
            timer = self._timer_factory(self.timeout, self._on_timeout)
            if hasattr(timer, "daemon"):
                timer.daemon = True
            timer.start()
            with self._lock:
                pending = self._state is JoinState.JOINING
                if pending:
                    self._timer = timer
            if not pending:
                timer.cancel()
        return future

    def abort(self, exc: BaseException) -> bool:
        """Fail the pending join, e.g. when submitting it raised."""

        return self._settle(JoinState.FAILED, exc=exc)

    def mark_left(self) -> None:
        with self._lock:
            previous = self._state
            self._state = JoinState.LEFT
            future = self._future
        self._disarm()
        if previous is JoinState.JOINING and future is not None:
            logger.warning(f"channel '{self.channel}': stopped while join still pending")
            future.set_exception(InvalidStateError("session stopped before the join settled"))

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------
    def _settle(self, state: JoinState, result: Any = None, exc: Optional[BaseException] = None) -> bool:
        with self._lock:
            if self._state is not JoinState.JOINING:
                return False
            self._state = state
            future = self._future
        self._disarm()
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return True

    def _disarm(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self.bus.unsubscribe(self._on_joined, EventKind.JOIN_CHANNEL)
        self.bus.unsubscribe(self._on_error, EventKind.ERROR)

    def _on_joined(self, event: SessionEvent) -> None:
        if self._settle(JoinState.JOINED, result=True):
            logger.info(f"joined channel '{self.channel}' as {event.payload[1]!r} in {elapsed_ms(self._started_ns):.0f}ms")
        else:
            logger.debug(f"channel '{self.channel}': late join-success ignored")

    def _on_error(self, event: SessionEvent) -> None:
        err, stat_code = event.payload[0], event.payload[1]
        if self._settle(JoinState.FAILED, exc=JoinError(err, stat_code)):
            logger.error(f"joining channel '{self.channel}' failed: err={err} stat_code={stat_code}")
        else:
            logger.debug(f"channel '{self.channel}': error callback after join settled (err={err})")

    def _on_timeout(self) -> None:
        with self._lock:
            pending = self._state is JoinState.JOINING
        if not pending:
            return
        self.timed_out = True
        exc = JoinTimeout(self.channel, self.timeout or 0.0)
        if self.timeout_rejects:
            if self._settle(JoinState.FAILED, exc=exc):
                logger.error(str(exc))
        else:
            logger.warning(f"{exc}; still waiting for the engine")


__all__ = ["JoinArbiter", "JoinState", "TimerFactory"]
