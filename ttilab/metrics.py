from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ttilab.search import QuiescenceWindowSearch
from ttilab.trace import TraceModel
from ttilab.types import InteractiveReport, ProgressSample, Timings, WindowSample
from ttilab.validate import NotFoundError
from ttilab.visual import VISUALLY_READY_PROGRESS, first_ready

log = logging.getLogger(__name__)

NAVIGATION_START_MARK = "navigationStart"
LAYOUT_STABLE_MARK = "firstMeaningfulPaint"

REASON_NOT_VISUALLY_READY = "visually-ready-not-found"
REASON_TRACE_EXHAUSTED = "trace-exhausted"


def time_to_interactive(
    *,
    model: TraceModel,
    progress: Sequence[ProgressSample],
    layout_stable: float,
    search: QuiescenceWindowSearch | None = None,
    min_progress: float = VISUALLY_READY_PROGRESS,
) -> InteractiveReport:
    search = search or QuiescenceWindowSearch()
    nav_start = model.find_mark(NAVIGATION_START_MARK)

    try:
        visually_ready = first_ready(progress, layout_stable, min_progress)
    except NotFoundError as exc:
        log.info("interactivity undetermined: %s", exc)
        return InteractiveReport(
            status="indeterminate",
            interactive_time=None,
            reason=REASON_NOT_VISUALLY_READY,
            timings=Timings(
                layout_stable=layout_stable, visually_ready=None, search_start=None
            ),
            expected_latency=None,
            samples=(),
            navigation_start=nav_start,
        )

    start = search.initial_state(model, layout_stable, visually_ready).start
    result = search.run(model, layout_stable, visually_ready)
    timings = Timings(
        layout_stable=layout_stable,
        visually_ready=visually_ready,
        search_start=start,
    )

    if result.found:
        return InteractiveReport(
            status="found",
            interactive_time=result.interactive_time,
            reason=None,
            timings=timings,
            expected_latency=result.expected_latency,
            samples=result.samples,
            navigation_start=nav_start,
        )

    return InteractiveReport(
        status="indeterminate",
        interactive_time=None,
        reason=REASON_TRACE_EXHAUSTED,
        timings=timings,
        expected_latency=None,
        samples=result.samples,
        navigation_start=nav_start,
    )


def _sample_to_json(s: WindowSample) -> dict[str, Any]:
    return {
        "start": s.start,
        "end": s.end,
        "latency": s.latency,
        "estimates": {f"p{p * 100:g}": e.latency for p, e in s.estimates.items()},
    }


def report_to_json(report: InteractiveReport) -> dict[str, Any]:
    t = report.timings
    out: dict[str, Any] = {
        "status": report.status,
        "interactive_time": report.interactive_time,
        "reason": report.reason,
        "timings": {
            "layout_stable": t.layout_stable,
            "visually_ready": t.visually_ready,
            "search_start": t.search_start,
        },
        "expected_latency": report.expected_latency,
        "navigation_start": report.navigation_start,
        "samples": [_sample_to_json(s) for s in report.samples],
    }
    if report.status == "indeterminate":
        out["label"] = "interactivity time could not be determined"

    nav = report.navigation_start
    if nav is not None:
        out["relative_to_navigation_start"] = {
            "interactive_time": (
                report.interactive_time - nav
                if report.interactive_time is not None
                else None
            ),
            "layout_stable": t.layout_stable - nav,
            "visually_ready": (
                t.visually_ready - nav if t.visually_ready is not None else None
            ),
        }
    return out
