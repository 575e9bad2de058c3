from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ttilab.types import Bounds, TraceEvent
from ttilab.validate import MalformedTraceError, require_time

MAIN_THREAD_NAME = "CrRendererMain"
PAGE_STARTED_EVENT = "TracingStartedInPage"

# Scripting, layout, painting and the scheduler's top-level tasks, both under
# Chrome's own category names and the plain ones.
DEFAULT_BUSY_CATEGORIES: frozenset[str] = frozenset(
    {
        "toplevel",
        "devtools.timeline",
        "disabled-by-default-devtools.timeline",
        "v8",
        "blink",
        "scripting",
        "layout",
        "painting",
        "rendering",
    }
)

_UNIT_DIVISOR = {"ms": 1.0, "us": 1000.0}

ThreadKey = tuple[int | None, int | None]  # (pid, tid)


@dataclass(frozen=True)
class TraceModel:
    events: tuple[TraceEvent, ...]
    bounds: Bounds
    thread_names: Mapping[ThreadKey, str] = field(hash=False)
    main_thread: ThreadKey | None
    # Disjoint, sorted (start, end) intervals on the main thread.
    busy_periods: tuple[tuple[float, float], ...]

    @property
    def main_thread_id(self) -> int | None:
        return self.main_thread[1] if self.main_thread is not None else None

    @staticmethod
    def build(
        raw_events: Iterable[Any],
        *,
        units: str = "ms",
        busy_categories: Iterable[str] = DEFAULT_BUSY_CATEGORIES,
    ) -> "TraceModel":
        if units not in _UNIT_DIVISOR:
            raise ValueError(f"units must be one of {sorted(_UNIT_DIVISOR)} (got {units!r})")
        divisor = _UNIT_DIVISOR[units]

        raw = list(raw_events)
        if not raw:
            raise MalformedTraceError("trace contains no events")

        thread_names: dict[ThreadKey, str] = {}
        # (input index, event) so sorting can fall back to input order.
        indexed: list[tuple[int, TraceEvent]] = []

        for i, rec in enumerate(raw):
            if not isinstance(rec, Mapping):
                raise MalformedTraceError(f"event #{i} must be an object (got {rec!r})")
            phase = str(rec.get("ph", "X"))

            if phase == "M":
                if rec.get("name") == "thread_name" and rec.get("tid") is not None:
                    args = rec.get("args") or {}
                    key = (_optional_id(rec, "pid", i), _optional_id(rec, "tid", i))
                    thread_names[key] = str(args.get("name", ""))
                continue

            if "ts" not in rec:
                raise MalformedTraceError(f"event #{i} is missing 'ts'")
            ts = require_time(rec["ts"], what=f"event #{i} ts", error=MalformedTraceError) / divisor
            dur_raw = rec.get("dur", 0)
            dur = require_time(dur_raw, what=f"event #{i} dur", error=MalformedTraceError) / divisor

            indexed.append(
                (
                    i,
                    TraceEvent(
                        ts=ts,
                        dur=dur,
                        category=str(rec.get("cat", "")),
                        name=str(rec.get("name", "")),
                        tid=_optional_id(rec, "tid", i),
                        pid=_optional_id(rec, "pid", i),
                        phase=phase,
                    ),
                )
            )

        if not indexed:
            raise MalformedTraceError("trace contains only metadata events")

        # Pairing B/E needs timeline order, not input order.
        indexed.sort(key=lambda item: (item[1].ts, item[0]))
        indexed = _fold_spans(indexed)
        indexed.sort(key=lambda item: (item[1].ts, item[0]))
        parsed = [ev for _, ev in indexed]

        bounds = Bounds(
            min=min(ev.ts for ev in parsed),
            max=max(ev.end for ev in parsed),
        )

        busy_cats = frozenset(busy_categories)
        main = _find_main_thread(parsed, thread_names, busy_cats)
        on_main = [ev for ev in parsed if (ev.pid, ev.tid) == main and ev.dur > 0]
        if any(busy_cats.intersection(ev.categories) for ev in parsed):
            on_main = [ev for ev in on_main if busy_cats.intersection(ev.categories)]
        busy = _merge_intervals((ev.ts, ev.end) for ev in on_main)

        return TraceModel(
            events=tuple(parsed),
            bounds=bounds,
            thread_names=MappingProxyType(thread_names),
            main_thread=main,
            busy_periods=busy,
        )

    def find_mark(self, name: str) -> float | None:
        for ev in self.events:
            if ev.name == name:
                return ev.ts
        return None

    def busy_periods_between(self, start: float, end: float) -> list[tuple[float, float]]:
        return [(a, b) for a, b in self.busy_periods if a < end and b > start]


def _optional_id(rec: Mapping[str, Any], key: str, index: int) -> int | None:
    value = rec.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedTraceError(
            f"event #{index} {key} must be an integer (got {value!r})"
        ) from exc


def _fold_spans(
    indexed: list[tuple[int, TraceEvent]],
) -> list[tuple[int, TraceEvent]]:
    """Fold time-ordered B/E pairs on each thread into complete events.

    An E with no open B is dropped; a B that is never closed stays as an instant.
    """

    out: list[tuple[int, TraceEvent]] = []
    open_spans: dict[ThreadKey, list[tuple[int, TraceEvent]]] = {}
    for i, ev in indexed:
        if ev.phase == "B":
            open_spans.setdefault((ev.pid, ev.tid), []).append((i, ev))
        elif ev.phase == "E":
            stack = open_spans.get((ev.pid, ev.tid))
            if not stack:
                continue
            begin_index, begin = stack.pop()
            out.append(
                (
                    begin_index,
                    TraceEvent(
                        ts=begin.ts,
                        dur=ev.ts - begin.ts,
                        category=begin.category,
                        name=begin.name,
                        tid=begin.tid,
                        pid=begin.pid,
                        phase="X",
                    ),
                )
            )
        else:
            out.append((i, ev))

    for stack in open_spans.values():
        out.extend(stack)
    return out


def _thread_order(key: ThreadKey) -> tuple[int, int]:
    pid, tid = key
    return (pid if pid is not None else -1, tid if tid is not None else -1)


def _find_main_thread(
    events: Sequence[TraceEvent],
    thread_names: Mapping[ThreadKey, str],
    busy_categories: frozenset[str],
) -> ThreadKey:
    renderer_mains = sorted(
        (key for key, name in thread_names.items() if name == MAIN_THREAD_NAME),
        key=_thread_order,
    )

    # The page under test is the process that reported TracingStartedInPage.
    for ev in events:
        if ev.name == PAGE_STARTED_EVENT:
            for key in renderer_mains:
                if key[0] == ev.pid:
                    return key
            return (ev.pid, ev.tid)

    if renderer_mains:
        return renderer_mains[0]

    counts = Counter(
        (ev.pid, ev.tid) for ev in events if busy_categories.intersection(ev.categories)
    )
    if not counts:
        counts = Counter((ev.pid, ev.tid) for ev in events if ev.dur > 0)
    if counts:
        # Most busy events wins; lowest (pid, tid) breaks ties.
        return min(counts, key=lambda key: (-counts[key], _thread_order(key)))
    return (events[0].pid, events[0].tid)
