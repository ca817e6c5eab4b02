"""Runtime helpers shared by collectors (device shell, polling)."""

from __future__ import annotations

from collectors_helper.runtime.polling import (
    Clock,
    FakeClock,
    PollingPolicy,
    SystemClock,
    poll_until,
)

__all__ = [
    "Clock",
    "FakeClock",
    "PollingPolicy",
    "SystemClock",
    "poll_until",
]
