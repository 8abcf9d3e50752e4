from __future__ import annotations

import pytest

from services.retry import RetryDeadlineExceeded, RetryPolicy, call_with_retry
from tests.helpers.fakes import FakeMonotonic


class _Transient(Exception):
    pass


class _Fatal(Exception):
    pass


def _policy(**overrides: object) -> RetryPolicy:
    params: dict[str, object] = {
        "max_retries": 3,
        "base_delay": 2.0,
        "multiplier": 2.0,
        "retry_on": lambda exc: isinstance(exc, _Transient),
    }
    params.update(overrides)
    return RetryPolicy(**params)  # type: ignore[arg-type]


class _Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls: list[float] = []

    def __call__(self, remaining: float) -> str:
        self.calls.append(remaining)
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_delay_for_grows_exponentially() -> None:
    policy = _policy()

    assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


@pytest.mark.parametrize(
    "overrides",
    [{"max_retries": -1}, {"base_delay": -0.5}, {"multiplier": 0.5}],
)
def test_policy_rejects_invalid_settings(overrides: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        _policy(**overrides)


def test_returns_immediately_on_success() -> None:
    clock = FakeMonotonic()
    func = _Flaky([])

    assert call_with_retry(func, _policy(), deadline=60, sleep=clock.sleep, clock=clock) == "ok"
    assert clock.sleeps == []
    assert func.calls == [60]


def test_retries_transient_errors_with_backoff() -> None:
    clock = FakeMonotonic()
    func = _Flaky([_Transient(), _Transient()])

    result = call_with_retry(func, _policy(), deadline=60, sleep=clock.sleep, clock=clock)

    assert result == "ok"
    assert clock.sleeps == [2.0, 4.0]
    assert func.calls == [60, 58, 54]


def test_reraises_last_error_when_retries_exhausted() -> None:
    clock = FakeMonotonic()
    last = _Transient("fourth")
    func = _Flaky([_Transient(), _Transient(), _Transient(), last])

    with pytest.raises(_Transient) as excinfo:
        call_with_retry(func, _policy(), deadline=60, sleep=clock.sleep, clock=clock)

    assert excinfo.value is last
    assert len(func.calls) == 4
    assert clock.sleeps == [2.0, 4.0, 8.0]


def test_does_not_retry_errors_outside_predicate() -> None:
    clock = FakeMonotonic()
    func = _Flaky([_Fatal()])

    with pytest.raises(_Fatal):
        call_with_retry(func, _policy(), deadline=60, sleep=clock.sleep, clock=clock)

    assert len(func.calls) == 1
    assert clock.sleeps == []


def test_deadline_stops_retries_before_budget_is_spent() -> None:
    clock = FakeMonotonic()
    func = _Flaky([_Transient(), _Transient(), _Transient()])

    # 2s + 4s fit inside 12s, the third 8s delay does not.
    with pytest.raises(RetryDeadlineExceeded) as excinfo:
        call_with_retry(func, _policy(), deadline=12, sleep=clock.sleep, clock=clock)

    assert clock.sleeps == [2.0, 4.0]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, _Transient)


def test_slow_attempt_counts_against_deadline() -> None:
    clock = FakeMonotonic()

    def slow(remaining: float) -> str:
        clock.advance(14.5)
        raise _Transient()

    with pytest.raises(RetryDeadlineExceeded):
        call_with_retry(slow, _policy(), deadline=15, sleep=clock.sleep, clock=clock)

    assert clock.sleeps == []


def test_failure_of_last_retry_past_deadline_raises_timeout() -> None:
    clock = FakeMonotonic()
    func = _Flaky([_Transient(), _Transient(), _Transient()])

    def last_attempt_times_out(remaining: float) -> str:
        if not func.failures:
            clock.advance(remaining)
            raise _Transient()
        return func(remaining)

    with pytest.raises(RetryDeadlineExceeded) as excinfo:
        call_with_retry(last_attempt_times_out, _policy(), deadline=15, sleep=clock.sleep, clock=clock)

    assert excinfo.value.attempts == 4
    assert isinstance(excinfo.value.__cause__, _Transient)
    assert clock.sleeps == [2.0, 4.0, 8.0]


def test_success_after_deadline_raises_timeout() -> None:
    clock = FakeMonotonic()

    def late(remaining: float) -> str:
        clock.advance(remaining + 1)
        return "ok"

    with pytest.raises(RetryDeadlineExceeded) as excinfo:
        call_with_retry(late, _policy(), deadline=15, sleep=clock.sleep, clock=clock)

    assert excinfo.value.attempts == 1
