"""Ownership of one native engine handle and normalisation of its callbacks.

Sequencing rules (callers serialise these; concurrent use is undefined):

* ``open`` once, before anything else;
* ``join`` / ``set_mix_layout`` while open;
* ``leave`` then ``release``.  Releasing without leaving first can lose
  callbacks still in flight, so it is refused;
* nothing after ``release``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from core.bus import EventBus
from core.errors import InvalidStateError
from core.events import NATIVE_CALLBACKS, SessionEvent, build_event
from sdk.engine import LayoutLike, RecorderEngine, layout_to_native

EngineFactory = Callable[[], RecorderEngine]


class EngineAdapter:
    """Drives one :class:`~sdk.engine.RecorderEngine` and relays its callbacks onto ``bus``."""

    def __init__(self, session_id: str, bus: EventBus, engine_factory: EngineFactory) -> None:
        self.session_id = session_id
        self.bus = bus
        self._engine_factory = engine_factory
        self._engine: Optional[RecorderEngine] = None
        self._left = False
        self._released = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self, log_level: Optional[int] = None) -> RecorderEngine:
        if self._engine is not None or self._released:
            raise InvalidStateError("engine handle already opened")

        engine = self._engine_factory()
        if log_level is not None:
            engine.set_log_level(int(log_level))
        for native_name in NATIVE_CALLBACKS:
            engine.on(native_name, self._make_handler(native_name))
        self._engine = engine
        logger.debug(f"[{self.session_id}] engine opened ({type(engine).__name__})")
        return engine

    def join(
        self,
        app_id: str,
        token: str,
        channel: str,
        account: str,
        binary_dir: Union[str, Path],
        cfg_path: Union[str, Path],
    ) -> None:
        """Submit the join request. The outcome only arrives as an event."""

        self._require_engine().join_channel(app_id, token, channel, account, str(binary_dir), str(cfg_path))

    def set_mix_layout(self, layout: LayoutLike) -> None:
        self._require_engine().set_mix_layout(layout_to_native(layout))

    def leave(self) -> None:
        self._require_engine().leave_channel()
        self._left = True

    def release(self) -> None:
        engine = self._require_engine()
        if not self._left:
            raise InvalidStateError("release() called without a preceding leave()")
        engine.release()
        self._engine = None
        self._released = True
        logger.debug(f"[{self.session_id}] engine released")

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def released(self) -> bool:
        return self._released

    # ------------------------------------------------------------------
    # Callback relay
    # ------------------------------------------------------------------
    def relay(self, native_name: str, *args: Any) -> Optional[SessionEvent]:
        """Turn one native callback into a typed event and publish it."""

        kind = NATIVE_CALLBACKS.get(native_name)
        if kind is None:
            logger.warning(f"[{self.session_id}] rejected unknown engine callback '{native_name}'")
            return None
        try:
            event = build_event(kind, self.session_id, *args)
        except ValidationError as exc:
            logger.error(f"[{self.session_id}] malformed {native_name} payload {args!r}: {exc}")
            return None
        self.bus.publish(event)
        return event

    def _make_handler(self, native_name: str) -> Callable[..., None]:
        def _handler(*args: Any) -> None:
            self.relay(native_name, *args)

        _handler.__name__ = f"relay_{native_name.lower()}"
        return _handler

    def _require_engine(self) -> RecorderEngine:
        if self._released:
            raise InvalidStateError("engine handle used after release()")
        if self._engine is None:
            raise InvalidStateError("engine handle not opened")
        return self._engine


__all__ = ["EngineAdapter", "EngineFactory"]
