from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from ttilab.estimator import InputLatencyEstimator
from ttilab.trace import TraceModel
from ttilab.types import SearchResult, WindowSample

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchConfig:
    window_ms: float = 500.0
    step_ms: float = 50.0
    lead_ms: float = 50.0
    threshold_ms: float = 50.0
    percentile: float = 0.9

    def __post_init__(self) -> None:
        for name in ("window_ms", "step_ms"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0 (got {getattr(self, name)!r})")
        if self.lead_ms < 0:
            raise ValueError(f"lead_ms must be >= 0 (got {self.lead_ms!r})")
        if not (0.0 < self.percentile <= 1.0):
            raise ValueError(f"percentile must be in (0, 1] (got {self.percentile!r})")


@dataclass(frozen=True)
class Searching:
    start: float


@dataclass(frozen=True)
class Found:
    time: float


@dataclass(frozen=True)
class Exhausted:
    pass


SearchState = Union[Searching, Found, Exhausted]


@dataclass(frozen=True)
class QuiescenceWindowSearch:
    config: SearchConfig = field(default_factory=SearchConfig)
    estimator: InputLatencyEstimator = field(default_factory=InputLatencyEstimator)

    def initial_state(
        self, model: TraceModel, layout_stable: float, visually_ready: float
    ) -> Searching:
        reference = max(layout_stable, visually_ready)
        return Searching(start=max(reference - self.config.lead_ms, model.bounds.min))

    def step(
        self, model: TraceModel, state: Searching
    ) -> tuple[SearchState, WindowSample | None]:
        """Advance one window. Returns the next state and the sample taken, if any."""

        cfg = self.config
        end = state.start + cfg.window_ms
        if end > model.bounds.max:
            return Exhausted(), None

        estimates = dict(self.estimator.estimate(model, state.start, end))
        target = float(cfg.percentile)
        if target not in estimates:
            estimates[target] = self.estimator.estimate_at(model, state.start, end, target)
        latency = estimates[target].latency

        sample = WindowSample(
            start=state.start, end=end, latency=latency, estimates=estimates
        )
        log.debug(
            "window [%.1f, %.1f] p%g est latency %.2fms",
            state.start,
            end,
            target * 100,
            latency,
        )

        if latency < cfg.threshold_ms:
            return Found(time=state.start), sample
        return Searching(start=state.start + cfg.step_ms), sample

    def run(
        self, model: TraceModel, layout_stable: float, visually_ready: float
    ) -> SearchResult:
        state: SearchState = self.initial_state(model, layout_stable, visually_ready)
        samples: list[WindowSample] = []

        while isinstance(state, Searching):
            state, sample = self.step(model, state)
            if sample is not None:
                samples.append(sample)

        if isinstance(state, Found):
            log.info("interactive at %.1f after %d windows", state.time, len(samples))
            return SearchResult(
                found=True, samples=tuple(samples), interactive_time=state.time
            )

        log.info("trace exhausted after %d windows", len(samples))
        return SearchResult(found=False, samples=tuple(samples))
