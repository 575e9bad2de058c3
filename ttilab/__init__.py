from __future__ import annotations

from ttilab.estimator import InputLatencyEstimator
from ttilab.metrics import time_to_interactive
from ttilab.search import QuiescenceWindowSearch, SearchConfig
from ttilab.trace import TraceModel
from ttilab.visual import first_ready

__all__ = [
    "InputLatencyEstimator",
    "QuiescenceWindowSearch",
    "SearchConfig",
    "TraceModel",
    "first_ready",
    "time_to_interactive",
]
