from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class TraceEvent:
    ts: float
    dur: float
    category: str
    name: str
    tid: int | None
    pid: int | None = None
    phase: str = "X"

    @property
    def end(self) -> float:
        return self.ts + self.dur

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(c.strip() for c in self.category.split(",") if c.strip())


@dataclass(frozen=True)
class Bounds:
    min: float
    max: float

    def contains(self, start: float, end: float) -> bool:
        return self.min <= start and end <= self.max


@dataclass(frozen=True)
class ProgressSample:
    timestamp: float
    progress: float


@dataclass(frozen=True)
class LatencyEstimate:
    percentile: float
    latency: float


@dataclass(frozen=True)
class WindowSample:
    start: float
    end: float
    latency: float  # at the search's target percentile
    estimates: Mapping[float, LatencyEstimate] = field(
        default_factory=dict, hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "estimates", MappingProxyType(dict(self.estimates)))


@dataclass(frozen=True)
class SearchResult:
    found: bool
    samples: tuple[WindowSample, ...]
    interactive_time: float | None = None

    @property
    def expected_latency(self) -> float | None:
        if not self.found or not self.samples:
            return None
        return self.samples[-1].latency


@dataclass(frozen=True)
class Timings:
    layout_stable: float
    visually_ready: float | None
    search_start: float | None


@dataclass(frozen=True)
class InteractiveReport:
    status: str  # "found" | "indeterminate"
    interactive_time: float | None
    reason: str | None
    timings: Timings
    expected_latency: float | None
    samples: tuple[WindowSample, ...]
    navigation_start: float | None = None
