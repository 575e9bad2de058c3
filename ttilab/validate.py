from __future__ import annotations

import math
from typing import Any


class MalformedTraceError(ValueError):
    pass


class ProgressValidationError(ValueError):
    pass


class InvalidWindowError(ValueError):
    pass


class NotFoundError(LookupError):
    pass


def is_number(value: Any) -> bool:
    # bool is an int subclass; a JSON true/false is never a timestamp.
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def require_time(value: Any, *, what: str, error: type[ValueError]) -> float:
    if not is_number(value):
        raise error(f"{what} must be a number (got {value!r})")
    f = float(value)
    if not math.isfinite(f):
        raise error(f"{what} must be finite (got {value!r})")
    if f < 0:
        raise error(f"{what} must be >= 0 (got {value!r})")
    return f


def validate_percentiles(percentiles: tuple[float, ...]) -> None:
    if not percentiles:
        raise ValueError("at least one percentile is required")
    for p in percentiles:
        if not is_number(p) or not (0.0 < float(p) <= 1.0):
            raise ValueError(f"percentile must be in (0, 1] (got {p!r})")
