from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ttilab.types import ProgressSample
from ttilab.validate import (
    NotFoundError,
    ProgressValidationError,
    is_number,
    require_time,
)

VISUALLY_READY_PROGRESS = 85.0


def first_ready(
    samples: Sequence[ProgressSample],
    not_before: float,
    min_progress: float = VISUALLY_READY_PROGRESS,
) -> float:
    for s in samples:
        if s.timestamp >= not_before and s.progress >= min_progress:
            return s.timestamp
    raise NotFoundError(
        f"no progress sample at or after {not_before} reaches {min_progress}%"
    )


def parse_progress_samples(rows: Iterable[Any]) -> tuple[ProgressSample, ...]:
    samples: list[ProgressSample] = []
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ProgressValidationError(f"sample #{i} must be an object (got {row!r})")

        key = "timestamp" if "timestamp" in row else "time"
        if key not in row:
            raise ProgressValidationError(f"sample #{i} is missing 'timestamp'")
        ts = require_time(row[key], what=f"sample #{i} timestamp", error=ProgressValidationError)

        progress = row.get("progress")
        if not is_number(progress) or not (0.0 <= float(progress) <= 100.0):
            raise ProgressValidationError(
                f"sample #{i} progress must be a number in [0, 100] (got {progress!r})"
            )
        samples.append(ProgressSample(timestamp=ts, progress=float(progress)))
    return tuple(samples)
