"""Bounded polling with a fixed delay and an injectable clock."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Abstract clock so polling loops can run without real sleeps."""

    def monotonic(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Production clock backed by `time`."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


@dataclass
class FakeClock:
    """Deterministic clock: `sleep` only advances virtual time."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(float(seconds))
        self.now += float(seconds)

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@dataclass(frozen=True)
class PollingPolicy:
    """At most `max_retries` waits of `delay_s` seconds between checks."""

    max_retries: int
    delay_s: float

    def __post_init__(self) -> None:
        if int(self.max_retries) < 0:
            raise ValueError("max_retries must be >= 0")
        if float(self.delay_s) < 0:
            raise ValueError("delay_s must be >= 0")

    @property
    def max_wait_s(self) -> float:
        return self.max_retries * self.delay_s


def poll_until(
    condition: Callable[[], bool],
    policy: PollingPolicy,
    *,
    clock: Clock | None = None,
    what: str = "condition",
) -> bool:
    """Return True once `condition()` holds, False when the policy is exhausted."""

    clock = clock or SystemClock()
    retries = 0
    while not condition():
        if retries >= policy.max_retries:
            logger.debug("%s not met after %d retries", what, retries)
            return False
        clock.sleep(policy.delay_s)
        retries += 1
    return True
