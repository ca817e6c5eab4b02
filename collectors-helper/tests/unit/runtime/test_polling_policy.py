from __future__ import annotations

import pytest

from collectors_helper.runtime.polling import FakeClock, PollingPolicy, poll_until


def _sequence(*values: bool):
    calls: list[bool] = []
    it = iter(values)

    def condition() -> bool:
        value = next(it)
        calls.append(value)
        return value

    return condition, calls


def test_poll_until_returns_immediately_when_condition_holds() -> None:
    clock = FakeClock()
    condition, calls = _sequence(True)
    assert poll_until(condition, PollingPolicy(max_retries=3, delay_s=1.0), clock=clock) is True
    assert calls == [True]
    assert clock.sleeps == []


def test_poll_until_sleeps_between_checks() -> None:
    clock = FakeClock()
    condition, calls = _sequence(False, False, True)
    assert poll_until(condition, PollingPolicy(max_retries=3, delay_s=0.5), clock=clock) is True
    assert calls == [False, False, True]
    assert clock.sleeps == [0.5, 0.5]
    assert clock.monotonic() == pytest.approx(1.0)


def test_poll_until_gives_up_after_max_retries() -> None:
    clock = FakeClock()
    condition, calls = _sequence(*([False] * 10))
    assert poll_until(condition, PollingPolicy(max_retries=3, delay_s=2.0), clock=clock) is False
    assert len(calls) == 4
    assert clock.sleeps == [2.0, 2.0, 2.0]


def test_poll_until_with_zero_retries_checks_once() -> None:
    clock = FakeClock()
    condition, calls = _sequence(False)
    assert poll_until(condition, PollingPolicy(max_retries=0, delay_s=5.0), clock=clock) is False
    assert calls == [False]
    assert clock.sleeps == []


def test_polling_policy_rejects_negative_values() -> None:
    with pytest.raises(ValueError):
        PollingPolicy(max_retries=-1, delay_s=1.0)
    with pytest.raises(ValueError):
        PollingPolicy(max_retries=1, delay_s=-0.1)


def test_polling_policy_max_wait() -> None:
    assert PollingPolicy(max_retries=12, delay_s=5.0).max_wait_s == 60.0
