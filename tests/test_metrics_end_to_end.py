from __future__ import annotations

import pytest

from ttilab.estimator import InputLatencyEstimator
from ttilab.metrics import (
    REASON_NOT_VISUALLY_READY,
    REASON_TRACE_EXHAUSTED,
    report_to_json,
    time_to_interactive,
)
from ttilab.trace import TraceModel
from ttilab.types import ProgressSample
from ttilab.validate import InvalidWindowError


def _model(*busy: tuple[float, float], nav_start: float | None = None) -> TraceModel:
    events = [{"ph": "I", "ts": 0, "name": "TracingStartedInPage", "tid": 1}]
    if nav_start is not None:
        events.append({"ph": "R", "ts": nav_start, "name": "navigationStart", "tid": 1})
    events += [
        {"ph": "X", "ts": a, "dur": b - a, "cat": "toplevel", "name": "RunTask", "tid": 1}
        for a, b in busy
    ]
    events.append({"ph": "I", "ts": 10_000, "name": "TracingEnd", "tid": 1})
    return TraceModel.build(events)


def _progress(*points: tuple[float, float]) -> tuple[ProgressSample, ...]:
    return tuple(ProgressSample(timestamp=t, progress=p) for t, p in points)


READY_AT_1200 = _progress((800, 20), (1000, 70), (1200, 85), (1500, 100))


def test_found_report_carries_timings_and_latency() -> None:
    report = time_to_interactive(
        model=_model((2000, 2100)), progress=READY_AT_1200, layout_stable=1000
    )
    assert report.status == "found"
    assert report.interactive_time == 1150
    assert report.reason is None
    assert report.timings.layout_stable == 1000
    assert report.timings.visually_ready == 1200
    assert report.timings.search_start == 1150
    assert report.expected_latency == 0.0
    assert len(report.samples) == 1


def test_exhausted_search_is_an_indeterminate_report_with_samples() -> None:
    report = time_to_interactive(
        model=_model((0, 9900)), progress=READY_AT_1200, layout_stable=1000
    )
    assert report.status == "indeterminate"
    assert report.reason == REASON_TRACE_EXHAUSTED
    assert report.interactive_time is None
    assert report.samples
    assert report.samples[0].start == report.timings.search_start


def test_page_never_visually_ready_skips_window_queries(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[tuple[float, float]] = []
    monkeypatch.setattr(
        InputLatencyEstimator,
        "estimate",
        lambda self, m, start, end: calls.append((start, end)),
    )
    report = time_to_interactive(
        model=_model((2000, 2100)),
        progress=_progress((800, 20), (1200, 60), (3000, 84.9)),
        layout_stable=1000,
    )
    assert report.status == "indeterminate"
    assert report.reason == REASON_NOT_VISUALLY_READY
    assert report.timings.visually_ready is None
    assert report.timings.search_start is None
    assert report.samples == ()
    assert calls == []


def test_visual_readiness_is_searched_from_layout_stable_time() -> None:
    progress = _progress((500, 90), (1300, 95))
    report = time_to_interactive(
        model=_model(), progress=progress, layout_stable=1000
    )
    assert report.timings.visually_ready == 1300
    assert report.interactive_time == 1250


def test_invalid_window_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(self, m, start, end):
        raise InvalidWindowError("window outside bounds")

    monkeypatch.setattr(InputLatencyEstimator, "estimate", broken)
    with pytest.raises(InvalidWindowError):
        time_to_interactive(model=_model(), progress=READY_AT_1200, layout_stable=1000)


def test_report_to_json_labels_indeterminate_results() -> None:
    report = time_to_interactive(
        model=_model((0, 9900), nav_start=100),
        progress=READY_AT_1200,
        layout_stable=1000,
    )
    out = report_to_json(report)
    assert out["status"] == "indeterminate"
    assert out["label"] == "interactivity time could not be determined"
    assert out["navigation_start"] == 100
    assert out["relative_to_navigation_start"]["visually_ready"] == 1100
    assert out["relative_to_navigation_start"]["interactive_time"] is None
    assert len(out["samples"]) == len(report.samples)
    assert set(out["samples"][0]["estimates"]) == {"p50", "p75", "p90", "p99", "p100"}


def test_report_to_json_found_has_no_label() -> None:
    report = time_to_interactive(
        model=_model((2000, 2100)), progress=READY_AT_1200, layout_stable=1000
    )
    out = report_to_json(report)
    assert "label" not in out
    assert out["interactive_time"] == 1150
    assert "relative_to_navigation_start" not in out
