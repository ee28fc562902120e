# tests/unit/test_bus.py
import threading

from core.bus import EventBus, QueuedSubscriber
from core.events import EventKind, build_event


def _join():
    return build_event(EventKind.JOIN_CHANNEL, "s1", "room1", "uid42")


def _user(uid=1):
    return build_event(EventKind.USER_JOIN, "s1", uid)


def test_kind_subscribers_only_see_their_kind():
    bus = EventBus()
    joins, everything = [], []
    bus.subscribe(joins.append, EventKind.JOIN_CHANNEL)
    bus.subscribe(everything.append)

    bus.publish(_join())
    bus.publish(_user())

    assert [e.kind for e in joins] == [EventKind.JOIN_CHANNEL]
    assert [e.kind for e in everything] == [EventKind.JOIN_CHANNEL, EventKind.USER_JOIN]


def test_late_subscriber_misses_earlier_events():
    bus = EventBus()
    bus.publish(_user(1))
    seen = []
    bus.subscribe(seen.append, EventKind.USER_JOIN)
    bus.publish(_user(2))
    assert [e.uid for e in seen] == [2]


def test_once_delivers_a_single_event():
    bus = EventBus()
    seen = []
    bus.once(EventKind.USER_JOIN, seen.append)
    bus.publish(_user(1))
    bus.publish(_user(2))
    assert [e.uid for e in seen] == [1]
    assert bus.subscriber_count(EventKind.USER_JOIN) == 0


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    bus.subscribe(seen.append, EventKind.USER_JOIN)
    bus.unsubscribe(seen.append, EventKind.USER_JOIN)
    bus.publish(_user())
    assert seen == []


def test_failing_subscriber_does_not_block_others():
    bus = EventBus()
    seen = []

    def boom(event):
        raise RuntimeError("subscriber bug")

    bus.subscribe(boom)
    bus.subscribe(seen.append)
    bus.publish(_user())
    assert len(seen) == 1


def test_buses_are_independent():
    a, b = EventBus("a"), EventBus("b")
    seen = []
    a.subscribe(seen.append)
    b.publish(_user())
    assert seen == []


def test_subscriber_may_unsubscribe_itself_during_publish():
    bus = EventBus()
    calls = []

    def once_by_hand(event):
        calls.append(event)
        bus.unsubscribe(once_by_hand)

    bus.subscribe(once_by_hand)
    bus.publish(_user(1))
    bus.publish(_user(2))
    assert len(calls) == 1


def test_queued_subscriber_runs_handler_on_worker_thread():
    handled = []
    threads = set()
    done = threading.Event()

    def slow(event):
        threads.add(threading.get_ident())
        handled.append(event.uid)
        if len(handled) == 3:
            done.set()

    sub = QueuedSubscriber(slow)
    bus = EventBus()
    bus.subscribe(sub)
    for uid in (1, 2, 3):
        bus.publish(_user(uid))

    assert done.wait(2.0)
    sub.close()
    assert handled == [1, 2, 3]
    assert threading.get_ident() not in threads


def test_queued_subscriber_drops_when_full():
    gate = threading.Event()
    sub = QueuedSubscriber(lambda e: gate.wait(2.0), maxsize=1)
    # First event is taken by the worker (blocked on gate), second fills the queue.
    sub(_user(1))
    for _ in range(50):
        if sub._queue.empty():
            break
        threading.Event().wait(0.01)
    sub(_user(2))
    sub(_user(3))
    assert sub.dropped == 1
    gate.set()
    sub.close()


def test_first_subscriber_runs_ahead_of_earlier_ones():
    bus = EventBus()
    order = []
    bus.subscribe(lambda e: order.append("late"), EventKind.JOIN_CHANNEL)
    bus.subscribe(lambda e: order.append("all"))
    bus.subscribe(lambda e: order.append("first"), EventKind.JOIN_CHANNEL, first=True)
    bus.publish(_join())
    assert order == ["first", "late", "all"]
