from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from ttilab.types import ProgressSample, WindowSample
from ttilab.validate import MalformedTraceError, ProgressValidationError
from ttilab.visual import parse_progress_samples


def read_trace_events(path: Path) -> list[Any]:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedTraceError(f"{path}: not valid JSON ({exc})") from exc
    if isinstance(obj, dict):
        obj = obj.get("traceEvents")
    if not isinstance(obj, list):
        raise MalformedTraceError(
            f"{path}: expected a JSON array or an object with 'traceEvents'"
        )
    return obj


def read_progress_samples(path: Path) -> tuple[ProgressSample, ...]:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ProgressValidationError(f"{path}: not valid JSON ({exc})") from exc
    if isinstance(obj, dict):
        obj = obj.get("samples", obj.get("frames"))
    if not isinstance(obj, list):
        raise ProgressValidationError(
            f"{path}: expected a JSON array or an object with 'samples'"
        )
    return parse_progress_samples(obj)


def write_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")


def write_samples_csv(
    path: Path, samples: tuple[WindowSample, ...] | list[WindowSample]
) -> None:
    percentiles = sorted({p for s in samples for p in s.estimates})

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(
            ["window_start", "window_end", "latency"]
            + [f"p{p * 100:g}" for p in percentiles]
        )
        for s in samples:
            w.writerow(
                [s.start, s.end, s.latency]
                + [s.estimates[p].latency if p in s.estimates else "" for p in percentiles]
            )
