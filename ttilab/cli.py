from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ttilab.io import (
    read_progress_samples,
    read_trace_events,
    write_samples_csv,
    write_summary_json,
)
from ttilab.metrics import LAYOUT_STABLE_MARK, report_to_json, time_to_interactive
from ttilab.trace import TraceModel
from ttilab.validate import MalformedTraceError, ProgressValidationError


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ttilab", description="Time-to-interactive from a performance trace"
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    an = sub.add_parser("analyze", help="Find the first quiet window after visual readiness")
    an.add_argument("--trace", required=True, type=Path)
    an.add_argument(
        "--progress",
        required=True,
        type=Path,
        help="JSON progress samples with timestamps in ms",
    )
    an.add_argument(
        "--layout-stable",
        required=False,
        type=float,
        default=None,
        help=f"Layout-stable time in ms; defaults to the trace's {LAYOUT_STABLE_MARK} mark",
    )
    an.add_argument(
        "--units",
        choices=["us", "ms"],
        default="us",
        help=(
            "Timestamp unit of the raw trace (default: us, as Chrome writes it). "
            "--layout-stable and progress timestamps are always in ms."
        ),
    )
    an.add_argument("--out-summary", required=True, type=Path)
    an.add_argument("--out-samples", required=False, type=Path)
    an.add_argument("--verbose", "-v", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)

    if args.cmd == "analyze":
        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

        try:
            model = TraceModel.build(read_trace_events(args.trace), units=args.units)
            progress = read_progress_samples(args.progress)
        except (MalformedTraceError, ProgressValidationError, OSError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2

        layout_stable = args.layout_stable
        if layout_stable is None:
            layout_stable = model.find_mark(LAYOUT_STABLE_MARK)
        if layout_stable is None:
            print(
                f"error: no --layout-stable given and no {LAYOUT_STABLE_MARK} in trace",
                file=sys.stderr,
            )
            return 2

        report = time_to_interactive(
            model=model, progress=progress, layout_stable=layout_stable
        )
        write_summary_json(args.out_summary, report_to_json(report))
        if args.out_samples:
            write_samples_csv(args.out_samples, report.samples)

        if report.status == "found":
            print(f"interactive at {report.interactive_time:.1f}ms")
        else:
            print(f"interactivity time could not be determined ({report.reason})")
        return 0

    raise AssertionError(f"Unhandled command: {args.cmd}")
