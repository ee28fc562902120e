# tests/unit/conftest.py
from datetime import datetime

import pytest

from plugins.engines.fake.impl import FakeRecorderEngine
from plugins.tokens.static.impl import StaticTokenBuilder
from recording.session_manager import SessionManager

START = datetime(2024, 1, 1, 10, 0, 0)


class ManualTimer:
    """threading.Timer look-alike that only fires when the test says so."""

    def __init__(self, interval, fn):
        self.interval = interval
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.fn()


@pytest.fixture
def engine():
    return FakeRecorderEngine(auto_join=False)


@pytest.fixture
def timers():
    created = []

    def factory(interval, fn):
        timer = ManualTimer(interval, fn)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def tokens():
    return StaticTokenBuilder("signed-token")


@pytest.fixture
def make_session(tmp_path, engine, timers, tokens):
    """Build a SessionManager wired to the fake engine, rooted in tmp_path."""

    def _make(**overrides):
        cfg = {
            "app_id": "A",
            "certificate": "C",
            "channel": "room1",
            "output_dir": tmp_path / "output",
        }
        cfg.update(overrides)
        return SessionManager(
            cfg,
            engine_factory=lambda: engine,
            token_builder=tokens,
            timer_factory=timers,
            clock=lambda: START,
        )

    return _make
