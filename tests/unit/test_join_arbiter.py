# tests/unit/test_join_arbiter.py
import pytest

from core.bus import EventBus
from core.errors import InvalidStateError, JoinError, JoinTimeout
from core.events import EventKind, build_event
from recording.join_arbiter import JoinArbiter, JoinState


def _success(bus):
    bus.publish(build_event(EventKind.JOIN_CHANNEL, "s1", "room1", "uid42"))


def _failure(bus, err=5, stat_code=101):
    bus.publish(build_event(EventKind.ERROR, "s1", err, stat_code))


@pytest.fixture
def bus():
    return EventBus("arbiter")


def _count_settlements(future):
    settled = []
    future.add_done_callback(settled.append)
    return settled


def test_arm_subscribes_before_returning(bus):
    arbiter = JoinArbiter(bus, "room1")
    assert arbiter.state is JoinState.IDLE
    arbiter.arm()
    assert arbiter.state is JoinState.JOINING
    assert bus.subscriber_count(EventKind.JOIN_CHANNEL) == 1
    assert bus.subscriber_count(EventKind.ERROR) == 1


def test_success_then_error_settles_once_with_success(bus):
    arbiter = JoinArbiter(bus, "room1")
    future = arbiter.arm()
    settled = _count_settlements(future)

    _success(bus)
    _failure(bus)

    assert future.result(timeout=0) is True
    assert arbiter.state is JoinState.JOINED
    assert len(settled) == 1


def test_error_then_success_settles_once_with_error(bus):
    arbiter = JoinArbiter(bus, "room1")
    future = arbiter.arm()
    settled = _count_settlements(future)

    _failure(bus, 5, 101)
    _success(bus)

    exc = future.exception(timeout=0)
    assert isinstance(exc, JoinError)
    assert (exc.err, exc.stat_code) == (5, 101)
    assert exc.codes == (5, 101)
    assert arbiter.state is JoinState.FAILED
    assert len(settled) == 1


def test_listeners_are_removed_after_settling(bus):
    arbiter = JoinArbiter(bus, "room1")
    arbiter.arm()
    _success(bus)
    assert bus.subscriber_count(EventKind.JOIN_CHANNEL) == 0
    assert bus.subscriber_count(EventKind.ERROR) == 0


def test_arm_only_from_idle(bus):
    arbiter = JoinArbiter(bus, "room1")
    arbiter.arm()
    with pytest.raises(InvalidStateError):
        arbiter.arm()


def test_future_cannot_be_cancelled(bus):
    future = JoinArbiter(bus, "room1").arm()
    assert future.cancel() is False


def test_advisory_timeout_does_not_settle(bus, timers):
    arbiter = JoinArbiter(bus, "room1", timeout=5.0, timer_factory=timers)
    future = arbiter.arm()
    (timer,) = timers.created
    assert timer.interval == 5.0 and timer.started

    timer.fire()  # t=5s
    assert not future.done()
    assert arbiter.state is JoinState.JOINING
    assert arbiter.timed_out

    _success(bus)  # t=7s
    assert future.result(timeout=0) is True
    assert arbiter.state is JoinState.JOINED


def test_timeout_is_cancelled_once_settled(bus, timers):
    arbiter = JoinArbiter(bus, "room1", timeout=5.0, timer_factory=timers)
    arbiter.arm()
    _success(bus)
    (timer,) = timers.created
    assert timer.cancelled
    timer.fire()
    assert not arbiter.timed_out


def test_rejecting_timeout_fails_the_join(bus, timers):
    arbiter = JoinArbiter(bus, "room1", timeout=5.0, timeout_rejects=True, timer_factory=timers)
    future = arbiter.arm()
    timers.created[0].fire()

    assert isinstance(future.exception(timeout=0), JoinTimeout)
    assert arbiter.state is JoinState.FAILED
    # A late success no longer changes the outcome
    _success(bus)
    assert arbiter.state is JoinState.FAILED


def test_no_timer_without_timeout(bus, timers):
    JoinArbiter(bus, "room1", timeout=None, timer_factory=timers).arm()
    assert timers.created == []


def test_abort_fails_pending_join(bus):
    arbiter = JoinArbiter(bus, "room1")
    future = arbiter.arm()
    assert arbiter.abort(OSError("engine refused")) is True
    assert isinstance(future.exception(timeout=0), OSError)
    assert arbiter.abort(OSError("again")) is False


def test_mark_left_while_pending_settles_with_invalid_state(bus):
    arbiter = JoinArbiter(bus, "room1")
    future = arbiter.arm()
    arbiter.mark_left()
    assert arbiter.state is JoinState.LEFT
    assert isinstance(future.exception(timeout=0), InvalidStateError)
    _success(bus)
    assert arbiter.state is JoinState.LEFT


def test_mark_left_after_join_keeps_outcome(bus):
    arbiter = JoinArbiter(bus, "room1")
    future = arbiter.arm()
    _success(bus)
    arbiter.mark_left()
    assert arbiter.state is JoinState.LEFT
    assert future.result(timeout=0) is True


def test_arbiter_settles_before_earlier_subscribers_run(bus):
    arbiter = JoinArbiter(bus, "room1")
    states = []
    bus.subscribe(lambda e: states.append(arbiter.state), EventKind.JOIN_CHANNEL)
    arbiter.arm()
    _success(bus)
    assert states == [JoinState.JOINED]


def test_disarm_twice_is_harmless(bus, timers):
    arbiter = JoinArbiter(bus, "room1", timeout=5.0, timer_factory=timers)
    arbiter.arm()
    _success(bus)
    arbiter.mark_left()
    arbiter._disarm()
    assert timers.created[0].cancelled
    assert arbiter.state is JoinState.LEFT
