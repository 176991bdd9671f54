import pytest

from concurkit.lftimer import TICK_INVALID, TimerError, TimerService


def _recording_service():
    service = TimerService()
    seen = {"tick": TICK_INVALID, "calls": []}

    def callback(timer, expiration, arg):
        arg["tick"] = service.tick_get()
        arg["calls"].append((timer, expiration))

    timer = service.alloc(callback, seen)
    return service, timer, seen


def test_main_sequence():
    service, tim_a, seen = _recording_service()
    assert tim_a is not None
    assert service.set(tim_a, 1)
    assert not service.set(tim_a, 1)

    service.tick_set(0)
    service.expire()
    assert seen["tick"] == TICK_INVALID

    service.tick_set(1)
    service.expire()
    assert seen["tick"] == 1
    assert service.set(tim_a, 2)
    assert service.reset(tim_a, 3)

    service.tick_set(2)
    service.expire()
    assert seen["tick"] == 1
    assert service.cancel(tim_a)

    service.tick_set(3)
    service.expire()
    assert seen["tick"] == 1
    assert not service.reset(tim_a, 0xFFFFFFFFFFFFFFFE)
    assert service.set(tim_a, 0xFFFFFFFFFFFFFFFE)
    assert service.reset(tim_a, 0xFFFFFFFFFFFFFFFE)

    service.expire()
    assert seen["tick"] == 1

    service.tick_set(0xFFFFFFFFFFFFFFFE)
    service.expire()
    assert seen["tick"] == 0xFFFFFFFFFFFFFFFE

    service.free(tim_a)


def test_callback_receives_timer_and_expiration():
    service, timer, seen = _recording_service()
    service.set(timer, 5)
    service.tick_set(7)
    service.expire()
    assert seen["calls"] == [(timer, 5)]
    service.expire()
    assert seen["calls"] == [(timer, 5)]


def test_tick_cannot_go_backwards():
    service = TimerService(4)
    service.tick_set(10)
    service.tick_set(4)
    assert service.tick_get() == 10


def test_tick_set_invalid_raises():
    service = TimerService(4)
    with pytest.raises(TimerError):
        service.tick_set(TICK_INVALID)


def test_set_invalid_expiration_raises():
    service, timer, _ = _recording_service()
    with pytest.raises(TimerError):
        service.set(timer, TICK_INVALID)
    with pytest.raises(TimerError):
        service.reset(timer, TICK_INVALID)


def test_invalid_timer_raises():
    service = TimerService(4)
    with pytest.raises(TimerError):
        service.set(0, 1)
    with pytest.raises(TimerError):
        service.free(3)


def test_cannot_free_active_timer():
    service, timer, _ = _recording_service()
    service.set(timer, 9)
    with pytest.raises(TimerError):
        service.free(timer)
    assert service.cancel(timer)
    service.free(timer)
    assert service.alloc(lambda *a: None) == timer


def test_pool_exhaustion():
    service = TimerService(2)
    assert service.alloc(lambda *a: None) == 0
    assert service.alloc(lambda *a: None) == 1
    assert service.alloc(lambda *a: None) is None


def test_only_due_timers_fire():
    service = TimerService(4)
    fired = []
    first = service.alloc(lambda t, e, a: fired.append(a), "first")
    second = service.alloc(lambda t, e, a: fired.append(a), "second")
    service.set(first, 3)
    service.set(second, 6)
    service.tick_set(4)
    service.expire()
    assert fired == ["first"]
    service.tick_set(6)
    service.expire()
    assert fired == ["first", "second"]