"""simpleperf sampling collector."""

from __future__ import annotations

from collectors_helper.simpleperf.helper import SimpleperfHelper, SimpleperfLaunch
from collectors_helper.simpleperf.report import (
    ReportParseResult,
    metric_key,
    parse_simpleperf_report,
)

__all__ = [
    "ReportParseResult",
    "SimpleperfHelper",
    "SimpleperfLaunch",
    "metric_key",
    "parse_simpleperf_report",
]
