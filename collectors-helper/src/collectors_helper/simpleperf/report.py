"""Parser for `simpleperf report` text output.

The report is a *human-readable* format; the parts we rely on are:

  Cmdline: /system/bin/simpleperf record -e instructions,cpu-cycles -o multi.data -p 680
  Arch: arm64
  Event: instructions (type 0, config 1)
  Samples: 29542
  Event count: 3498520605

  Overhead  Pid  Symbol
  0.02%     680   android::SurfaceFlinger::commit(long, long, long)

Header lines carry `key: value`; symbol rows start with a percentage. A report
recorded with several events repeats the header block once per event.

Metric keys are `{event}-{process}` for the event total and
`{event}-{process}-{symbol}` for a symbol's share of it. Values are kept as
text, matching the report.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Dict, Optional

logger = logging.getLogger(__name__)

_HEADER_SEP = ": "
_EVENT_LABEL = "Event"
_EVENT_COUNT_LABEL = "Event count"


@dataclass(frozen=True)
class ReportParseResult:
    metrics: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.error is None


def metric_key(event: str, process: str, symbol: str | None = None) -> str:
    parts = [event, process]
    if symbol is not None:
        parts.append(symbol)
    return "-".join(parts)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def symbol_event_count(percentage: float, total_event_count: int) -> int:
    """Convert a symbol's overhead percentage into an event count."""

    count = _round_half_up(percentage / 100.0 * total_event_count)
    # A symbol's share never exceeds the event total.
    return min(count, total_event_count)


def parse_simpleperf_report(
    text: str, process: str, symbols: Iterable[str]
) -> ReportParseResult:
    """Extract event totals and per-symbol counts for `process` from report text.

    Parsing stops at the first malformed line; whatever was collected before
    it is returned along with the error.
    """

    wanted = set(symbols)
    results: Dict[str, str] = {}
    event_name = ""
    total_event_count = 0

    for lineno, raw_line in enumerate((text or "").splitlines(), start=1):
        line = raw_line.rstrip("\r")
        try:
            if _HEADER_SEP in line:
                split_line = line.split(_HEADER_SEP)
                label = split_line[0]
                if label == _EVENT_LABEL:
                    event_name = split_line[1].split(" ")[0]
                elif label == _EVENT_COUNT_LABEL:
                    total = split_line[1].strip()
                    total_event_count = int(total)
                    results[metric_key(event_name, process)] = total
            elif "%" in line:
                fields = line.split(None, 2)
                symbol = fields[2].strip()
                if symbol not in wanted:
                    continue
                percentage_field = fields[0]
                if percentage_field.endswith("%"):
                    percentage_field = percentage_field[:-1]
                percentage = float(percentage_field)
                count = symbol_event_count(percentage, total_event_count)
                results[metric_key(event_name, process, symbol)] = str(count)
        except (IndexError, ValueError) as e:
            error = f"line {lineno}: {e} ({line!r})"
            logger.error("Could not parse simpleperf report: %s", error)
            return ReportParseResult(metrics=results, error=error)

    return ReportParseResult(metrics=results)
