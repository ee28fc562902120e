# tests/unit/test_engine_adapter.py
import pytest

from core.bus import EventBus
from core.errors import InvalidStateError
from core.events import NATIVE_CALLBACKS, EventKind
from plugins.engines.fake.impl import FakeRecorderEngine
from recording.engine_adapter import EngineAdapter
from sdk.engine import EngineLogLevel, LayoutRegion, MixLayout


@pytest.fixture
def bus():
    return EventBus("test")


@pytest.fixture
def adapter(bus, engine):
    a = EngineAdapter("s1", bus, lambda: engine)
    a.open()
    return a


def test_open_subscribes_once_to_every_native_callback(adapter, engine):
    assert set(engine.handlers) == set(NATIVE_CALLBACKS)
    assert all(len(h) == 1 for h in engine.handlers.values())


def test_log_level_passed_only_when_given(bus):
    quiet = FakeRecorderEngine(auto_join=False)
    EngineAdapter("s1", bus, lambda: quiet).open()
    assert quiet.called("set_log_level") == []

    chatty = FakeRecorderEngine(auto_join=False)
    EngineAdapter("s2", bus, lambda: chatty).open(EngineLogLevel.DEBUG)
    assert chatty.called("set_log_level") == [(7,)]


def test_open_twice_is_refused(adapter):
    with pytest.raises(InvalidStateError):
        adapter.open()


def test_native_callbacks_are_relayed_as_typed_events(adapter, engine, bus):
    seen = []
    bus.subscribe(seen.append)

    engine.fire("REC_EVENT_JOIN_CHANNEL", "room1", "uid42")
    engine.fire("REC_EVENT_REMOTE_AUDIO_STREAM_STATE_CHANGED", 9, 2, 0)
    engine.fire("REC_EVENT_CONN_LOST")

    assert [(e.kind, e.payload) for e in seen] == [
        (EventKind.JOIN_CHANNEL, ("room1", "uid42")),
        (EventKind.REMOTE_AUDIO_STREAM_STATE_CHANGED, (9, 2, 0)),
        (EventKind.CONNECTION_LOST, ()),
    ]
    assert all(e.session == "s1" for e in seen)


def test_unknown_native_callback_is_rejected(adapter, bus):
    seen = []
    bus.subscribe(seen.append)
    assert adapter.relay("REC_EVENT_SOMETHING_NEW", 1, 2) is None
    assert seen == []


def test_malformed_payload_is_not_forwarded(adapter, bus):
    seen = []
    bus.subscribe(seen.append)
    assert adapter.relay("REC_EVENT_ERROR", "not-a-code", None) is None
    assert seen == []


def test_join_is_forwarded_with_string_paths(adapter, engine, tmp_path):
    adapter.join("A", "tok", "room1", "agora-recorder", tmp_path / "bin", tmp_path / "cfg.json")
    assert engine.called("join_channel") == [
        ("A", "tok", "room1", "agora-recorder", str(tmp_path / "bin"), str(tmp_path / "cfg.json"))
    ]


def test_mix_layout_is_sent_in_vendor_shape(adapter, engine):
    layout = MixLayout(
        canvas_width=1280,
        canvas_height=720,
        regions=[LayoutRegion(uid=1, width=0.5), LayoutRegion(uid=2, x=0.5, width=0.5)],
    )
    adapter.set_mix_layout(layout)
    (sent,), = engine.called("set_mix_layout")
    assert sent["canvasWidth"] == 1280
    assert sent["regionCount"] == 2
    assert sent["regions"][1]["x"] == 0.5
    assert sent["regions"][0]["renderMode"] == 0


def test_plain_dict_layout_is_forwarded_unchanged(adapter, engine):
    raw = {"canvasWidth": 640, "canvasHeight": 480, "regionCount": 0, "regions": []}
    adapter.set_mix_layout(raw)
    assert engine.called("set_mix_layout") == [(raw,)]


def test_release_requires_leave_first(adapter, engine):
    with pytest.raises(InvalidStateError):
        adapter.release()
    assert engine.called("release") == []

    adapter.leave()
    adapter.release()
    assert [name for name, _ in engine.calls] == ["leave_channel", "release"]
    assert adapter.released


def test_use_after_release_is_an_error(adapter, engine):
    adapter.leave()
    adapter.release()
    for call in (adapter.leave, adapter.release, lambda: adapter.set_mix_layout({})):
        with pytest.raises(InvalidStateError):
            call()
    assert engine.called("set_mix_layout") == []


def test_calls_before_open_are_errors(bus, engine):
    fresh = EngineAdapter("s1", bus, lambda: engine)
    with pytest.raises(InvalidStateError):
        fresh.join("A", "t", "c", "acct", "bin", "cfg")
