import pytest

from shared.utils.retry import RetriesExhausted, RetryCancelled, bounded_retry


class Recorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _failing(times, result="ok", exc=LookupError):
    state = {"calls": 0}

    async def fn():
        state["calls"] += 1
        if state["calls"] <= times:
            raise exc("not yet")
        return result

    return fn, state


async def test_returns_first_success():
    sleep = Recorder()
    fn, state = _failing(2)
    assert await bounded_retry(fn, attempts=5, delay=0.5, sleep=sleep) == "ok"
    assert state["calls"] == 3
    assert sleep.delays == [0.5, 0.5]


async def test_exhaustion_carries_last_error():
    fn, state = _failing(10)
    with pytest.raises(RetriesExhausted) as info:
        await bounded_retry(fn, attempts=3, delay=0.1, sleep=Recorder())
    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, LookupError)
    assert state["calls"] == 3


async def test_errors_outside_retry_on_propagate_immediately():
    fn, state = _failing(1, exc=KeyError)
    with pytest.raises(KeyError):
        await bounded_retry(fn, attempts=5, delay=0.1, retry_on=(ValueError,), sleep=Recorder())
    assert state["calls"] == 1


async def test_backoff_is_capped():
    sleep = Recorder()
    fn, _ = _failing(4)
    await bounded_retry(fn, attempts=5, delay=1.0, backoff=2.0, max_delay=3.0, sleep=sleep)
    assert sleep.delays == [1.0, 2.0, 3.0, 3.0]


async def test_should_continue_false_stops_before_next_attempt():
    fn, state = _failing(10)
    with pytest.raises(RetryCancelled) as info:
        await bounded_retry(fn, attempts=10, delay=0.1, should_continue=lambda: state["calls"] < 2, sleep=Recorder())
    assert info.value.attempts == 2
    assert state["calls"] == 2


async def test_on_retry_sees_attempt_numbers():
    seen = []
    fn, _ = _failing(2)
    await bounded_retry(fn, attempts=3, delay=0, sleep=Recorder(), on_retry=lambda n, e: seen.append(n))
    assert seen == [1, 2]


async def test_attempts_must_be_positive():
    fn, _ = _failing(0)
    with pytest.raises(ValueError):
        await bounded_retry(fn, attempts=0, delay=0)
