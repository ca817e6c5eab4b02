"""Collectors helper.

Host-side helpers for collecting performance samples from Android devices:
- an adb controller exposing a device shell
- bounded polling with an injectable clock
- the simpleperf sampling collector and report parser
"""

__all__ = [
    "cli",
    "config",
    "runtime",
    "simpleperf",
]
