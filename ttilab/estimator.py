from __future__ import annotations

# Estimated input latency over a window of the main thread.
#
# An input arriving at instant t waits until the busy period containing t ends,
# or not at all when t falls in an idle gap. Instants are sampled at the
# midpoints of a fixed grid across the window, so a given trace and window
# always produce the same distribution.

from dataclasses import dataclass

import numpy as np

from ttilab.trace import TraceModel
from ttilab.types import LatencyEstimate
from ttilab.validate import InvalidWindowError, validate_percentiles

DEFAULT_PERCENTILES: tuple[float, ...] = (0.5, 0.75, 0.9, 0.99, 1.0)
DEFAULT_RESOLUTION_MS = 1.0


@dataclass(frozen=True)
class InputLatencyEstimator:
    percentiles: tuple[float, ...] = DEFAULT_PERCENTILES
    resolution_ms: float = DEFAULT_RESOLUTION_MS

    def __post_init__(self) -> None:
        validate_percentiles(self.percentiles)
        if not self.resolution_ms > 0:
            raise ValueError(f"resolution_ms must be > 0 (got {self.resolution_ms!r})")

    def estimate(
        self, model: TraceModel, start: float, end: float
    ) -> dict[float, LatencyEstimate]:
        """Return ``{percentile: LatencyEstimate}`` in ascending percentile order."""

        return self._estimate(model, start, end, self.percentiles)

    def estimate_at(
        self, model: TraceModel, start: float, end: float, percentile: float
    ) -> LatencyEstimate:
        validate_percentiles((percentile,))
        return self._estimate(model, start, end, (percentile,))[float(percentile)]

    def _estimate(
        self,
        model: TraceModel,
        start: float,
        end: float,
        percentiles: tuple[float, ...],
    ) -> dict[float, LatencyEstimate]:
        _check_window(model, start, end)
        ps = sorted({float(p) for p in percentiles})

        busy = model.busy_periods_between(start, end)
        if not busy or end == start:
            return {p: LatencyEstimate(percentile=p, latency=0.0) for p in ps}

        latencies = self.sample_latencies(busy, start, end)
        values = np.percentile(latencies, [p * 100.0 for p in ps])
        return {
            p: LatencyEstimate(percentile=p, latency=float(v))
            for p, v in zip(ps, values)
        }

    def sample_latencies(
        self, busy: list[tuple[float, float]], start: float, end: float
    ) -> np.ndarray:
        n = max(1, int(round((end - start) / self.resolution_ms)))
        step = (end - start) / n
        instants = start + (np.arange(n, dtype=np.float64) + 0.5) * step

        starts = np.array([a for a, _ in busy], dtype=np.float64)
        ends = np.array([b for _, b in busy], dtype=np.float64)

        # busy is disjoint and sorted, so the candidate period for each instant
        # is the last one starting at or before it.
        idx = np.searchsorted(starts, instants, side="right") - 1
        safe = np.clip(idx, 0, None)
        inside = (idx >= 0) & (instants < ends[safe])
        return np.where(inside, ends[safe] - instants, 0.0)


def _check_window(model: TraceModel, start: float, end: float) -> None:
    if start > end:
        raise InvalidWindowError(f"window start {start} is after its end {end}")
    if not model.bounds.contains(start, end):
        raise InvalidWindowError(
            f"window [{start}, {end}] lies outside trace bounds "
            f"[{model.bounds.min}, {model.bounds.max}]"
        )
