"""Orchestrate one recording session against the native engine."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from loguru import logger

from config.paths import ensure_record_dir, resolve_record_path
from core.bus import Callback, EventBus
from core.errors import InvalidStateError
from core.events import EventKind
from recording.config_writer import write_session_config
from recording.engine_adapter import EngineAdapter, EngineFactory
from recording.join_arbiter import JoinArbiter, JoinState, TimerFactory
from sdk.config import SDK_CONFIG, AppConfig, EffectiveSessionConfig, SessionConfig
from sdk.engine import ROLE_SUBSCRIBER, LayoutLike, TokenBuilder
from sdk.ids import new_session_id, now_local
from sdk.registry import REGISTRY, Registry


class SessionManager:
    """Create the record directory, join the channel and relay engine events.

    Construction validates the config (``ConfigurationError``, no I/O), fixes
    ``started_at``, creates the record directory (``SessionCreationError``)
    and opens the engine.  :meth:`start` writes ``cfg.json`` and submits the
    join; its future settles exactly once.  :meth:`stop` leaves and releases.
    """

    def __init__(
        self,
        config: Union[SessionConfig, Mapping[str, Any]],
        *,
        app_config: Optional[AppConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        token_builder: Optional[TokenBuilder] = None,
        timer_factory: Optional[TimerFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cfg: EffectiveSessionConfig = SessionConfig.build(config).resolve(app_config or SDK_CONFIG)

        registry = REGISTRY if app_config is None else Registry(app_config.plugins)
        self._token_builder: TokenBuilder = token_builder or registry.create("token")
        if engine_factory is None:
            engine_factory = registry.load("engine")

        self.session_id = new_session_id()
        self.started_at = (clock or now_local)()
        self._record_path = resolve_record_path(
            self.cfg.output_dir, self.cfg.record_dir_tmpl, self.cfg.channel, self.started_at
        )
        ensure_record_dir(self._record_path)

        self.bus = EventBus(name=f"{self.cfg.channel}:{self.session_id}")
        self._adapter = EngineAdapter(self.session_id, self.bus, engine_factory)
        self._arbiter = JoinArbiter(
            self.bus,
            self.cfg.channel,
            timeout=self.cfg.join_timeout,
            timeout_rejects=self.cfg.timeout_rejects,
            timer_factory=timer_factory or threading.Timer,
        )
        self._adapter.open(self.cfg.log_level)
        logger.info(f"session {self.session_id} for channel '{self.channel}' → {self._record_path}")

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------
    @property
    def channel(self) -> str:
        return self.cfg.channel

    @property
    def record_path(self) -> Path:
        """Directory holding this session's videos, logs and ``cfg.json``."""
        return self._record_path

    @property
    def state(self) -> JoinState:
        return self._arbiter.state

    @property
    def timed_out(self) -> bool:
        return self._arbiter.timed_out

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "Future[bool]":
        """Join the channel and start recording.

        Returns a future resolving to ``True`` on join-success or failing
        with :class:`~core.errors.JoinError` carrying the engine's codes.
        """

        if self.state is not JoinState.IDLE:
            raise InvalidStateError(f"start() not allowed in state {self.state.value}")

        cfg_path = write_session_config(self._record_path)
        token = self._token_builder.build(
            self.cfg.app_id.get_secret_value(),
            self.cfg.certificate.get_secret_value(),
            self.cfg.channel,
            self.cfg.user_account,
            ROLE_SUBSCRIBER,
            0,
        )

        future = self._arbiter.arm()
        logger.info(f"joining channel '{self.channel}' as '{self.cfg.user_account}'")
        try:
            self._adapter.join(
                self.cfg.app_id.get_secret_value(),
                token,
                self.cfg.channel,
                self.cfg.user_account,
                self.cfg.binary_dir,
                cfg_path,
            )
        except Exception as exc:
            logger.error(f"engine refused join request for '{self.channel}': {exc}")
            self._arbiter.abort(exc)
        return future

    async def start_async(self) -> bool:
        return await asyncio.wrap_future(self.start())

    def join(self, timeout: Optional[float] = None) -> bool:
        """Blocking form of :meth:`start`."""
        return self.start().result(timeout=timeout)

    def stop(self) -> None:
        """Leave the channel and release the engine handle."""

        if self._adapter.released:
            logger.debug(f"session {self.session_id} already stopped")
            return
        self._adapter.leave()
        self._adapter.release()
        self._arbiter.mark_left()
        logger.info(f"left channel '{self.channel}'")

    def set_mix_layout(self, layout: LayoutLike) -> None:
        if self.state is not JoinState.JOINED:
            raise InvalidStateError(f"set_mix_layout() requires a joined session (state {self.state.value})")
        self._adapter.set_mix_layout(layout)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def on(self, kind: EventKind, callback: Callback) -> None:
        self.bus.subscribe(callback, kind)

    def once(self, kind: EventKind, callback: Callback) -> Callback:
        return self.bus.once(kind, callback)

    def off(self, kind: Optional[EventKind], callback: Callback) -> None:
        self.bus.unsubscribe(callback, kind)

    def subscribe_all(self, callback: Callback) -> None:
        self.bus.subscribe(callback)

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


__all__ = ["SessionManager"]
