from __future__ import annotations

from fakes import SAMPLE_REPORT

from collectors_helper.simpleperf.report import (
    metric_key,
    parse_simpleperf_report,
    symbol_event_count,
)

_COMMIT = "android::SurfaceFlinger::commit(long, long, long)"


def test_parse_event_count_and_symbol_percentage() -> None:
    text = "\n".join(
        [
            "Event: cycles (type 0, config 1)",
            "Event count: 1000",
            "10.00%    123   foo()",
        ]
    )
    res = parse_simpleperf_report(text, "proc", {"foo()"})
    assert res.complete
    assert res.metrics == {"cycles-proc": "1000", "cycles-proc-foo()": "100"}


def test_parse_skips_symbols_not_requested() -> None:
    text = "\n".join(
        [
            "Event: cycles (type 0, config 1)",
            "Event count: 1000",
            "10.00%    123   foo()",
            "20.00%    123   bar()",
        ]
    )
    res = parse_simpleperf_report(text, "proc", {"foo()"})
    assert "cycles-proc-bar()" not in res.metrics
    assert set(res.metrics) == {"cycles-proc", "cycles-proc-foo()"}


def test_parse_multiple_events_tracks_current_event_and_total() -> None:
    res = parse_simpleperf_report(SAMPLE_REPORT, "surfaceflinger", {"foo()", _COMMIT})
    assert res.complete
    assert res.metrics == {
        "cpu-cycles-surfaceflinger": "1000",
        "cpu-cycles-surfaceflinger-foo()": "100",
        f"cpu-cycles-surfaceflinger-{_COMMIT}": "255",
        "instructions-surfaceflinger": "3498520605",
        f"instructions-surfaceflinger-{_COMMIT}": "699704",
    }


def test_parse_is_idempotent() -> None:
    symbols = {"foo()", "bar()", _COMMIT}
    first = parse_simpleperf_report(SAMPLE_REPORT, "surfaceflinger", symbols)
    second = parse_simpleperf_report(SAMPLE_REPORT, "surfaceflinger", symbols)
    assert first == second


def test_parse_without_symbols_keeps_only_event_totals() -> None:
    res = parse_simpleperf_report(SAMPLE_REPORT, "sf", set())
    assert res.metrics == {"cpu-cycles-sf": "1000", "instructions-sf": "3498520605"}


def test_parse_stops_at_malformed_event_count_and_keeps_partial_results() -> None:
    text = "\n".join(
        [
            "Event: cycles (type 0, config 1)",
            "Event count: 1000",
            "10.00%    123   foo()",
            "Event: instructions (type 0, config 1)",
            "Event count: lots",
            "50.00%    123   foo()",
        ]
    )
    res = parse_simpleperf_report(text, "proc", {"foo()"})
    assert not res.complete
    assert res.error is not None and "line 5" in res.error
    assert res.metrics == {"cycles-proc": "1000", "cycles-proc-foo()": "100"}


def test_parse_stops_at_truncated_symbol_row() -> None:
    text = "\n".join(["Event: cycles (type 0, config 1)", "Event count: 10", "5.00%"])
    res = parse_simpleperf_report(text, "proc", {"foo()"})
    assert not res.complete
    assert res.metrics == {"cycles-proc": "10"}


def test_parse_empty_report() -> None:
    res = parse_simpleperf_report("", "proc", {"foo()"})
    assert res.complete
    assert res.metrics == {}


def test_symbol_event_count_rounds_half_up() -> None:
    assert symbol_event_count(2.5, 100) == 3
    assert symbol_event_count(0.4, 100) == 0


def test_symbol_event_count_never_exceeds_total() -> None:
    assert symbol_event_count(100.0, 7) == 7
    assert symbol_event_count(100.01, 1000) == 1000


def test_metric_key_formats() -> None:
    assert metric_key("cycles", "proc") == "cycles-proc"
    assert metric_key("cycles", "proc", "foo()") == "cycles-proc-foo()"
