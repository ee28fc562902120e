"""Per-session publish/subscribe for engine events.

Every :class:`~recording.session_manager.SessionManager` owns its own
:class:`EventBus`; there is no process-wide instance.  Delivery is
at-most-once: nothing is buffered, so a subscriber attached late misses
earlier events.

``publish`` runs on whatever thread the native engine calls back on.
Subscribers must return quickly; slow consumers should be wrapped in a
:class:`QueuedSubscriber`.
"""

from __future__ import annotations

import queue
import threading
from typing import Callable, Dict, List, Optional

from loguru import logger

from core.events import EventKind, SessionEvent

Callback = Callable[[SessionEvent], None]


class EventBus:
    """Thread-safe fan-out of :class:`SessionEvent` records."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._subscribers: Dict[EventKind, List[Callback]] = {}
        self._all_subscribers: List[Callback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callback, kind: Optional[EventKind] = None, *, first: bool = False) -> None:
        """Subscribe ``callback`` to ``kind``, or to every event when ``kind`` is None.

        ``first=True`` puts it ahead of the callbacks already registered.
        """

        with self._lock:
            if kind is None:
                subs = self._all_subscribers
            else:
                subs = self._subscribers.setdefault(EventKind(kind), [])
            if first:
                subs.insert(0, callback)
            else:
                subs.append(callback)

    def unsubscribe(self, callback: Callback, kind: Optional[EventKind] = None) -> None:
        with self._lock:
            if kind is None:
                if callback in self._all_subscribers:
                    self._all_subscribers.remove(callback)
            else:
                subs = self._subscribers.get(EventKind(kind), [])
                if callback in subs:
                    subs.remove(callback)

    def once(self, kind: EventKind, callback: Callback) -> Callback:
        """Deliver at most one ``kind`` event to ``callback``.

        Returns the wrapper actually registered so callers can cancel it
        with :meth:`unsubscribe`.
        """

        fired = threading.Event()

        def _wrapper(event: SessionEvent) -> None:
            with self._lock:
                if fired.is_set():
                    return
                fired.set()
            self.unsubscribe(_wrapper, kind)
            callback(event)

        self.subscribe(_wrapper, kind)
        return _wrapper

    def subscriber_count(self, kind: Optional[EventKind] = None) -> int:
        with self._lock:
            if kind is None:
                return len(self._all_subscribers)
            return len(self._subscribers.get(EventKind(kind), []))

    def publish(self, event: SessionEvent) -> None:
        with self._lock:
            targets = self._subscribers.get(event.kind, []).copy() + self._all_subscribers.copy()

        # Outside the lock so subscribers may (un)subscribe from a callback.
        for callback in targets:
            try:
                callback(event)
            except Exception:
                callback_name = getattr(callback, "__name__", repr(callback))
                logger.exception(f"[{self.name}] subscriber {callback_name} failed on {event.kind.value}")

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()
            self._all_subscribers.clear()


class QueuedSubscriber:
    """Hand events off to a worker thread so the engine callback never blocks.

    Example::

        sub = QueuedSubscriber(slow_handler)
        bus.subscribe(sub)
        ...
        sub.close()
    """

    def __init__(self, handler: Callback, *, name: str = "queued-subscriber", maxsize: int = 0) -> None:
        self.handler = handler
        self.__name__ = name
        self._queue: "queue.Queue[Optional[SessionEvent]]" = queue.Queue(maxsize=maxsize)
        self._dropped = 0
        self._thread = threading.Thread(target=self._worker_loop, name=name, daemon=True)
        self._thread.start()

    def __call__(self, event: SessionEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self._dropped += 1
            logger.warning(f"{self.__name__}: queue full, dropped {event.kind.value}")

    @property
    def dropped(self) -> int:
        return self._dropped

    def _worker_loop(self) -> None:
        while True:
            event = self._queue.get()
            if event is None:
                break
            try:
                self.handler(event)
            except Exception:
                logger.exception(f"{self.__name__}: handler failed on {event.kind.value}")

    def close(self, timeout: float = 5.0) -> None:
        """Drain pending events and stop the worker."""

        self._queue.put(None)
        self._thread.join(timeout=timeout)


__all__ = ["EventBus", "QueuedSubscriber", "Callback"]
