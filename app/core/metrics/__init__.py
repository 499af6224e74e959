from __future__ import annotations

from functools import lru_cache

from app.core.metrics.metrics import Metrics, RecordedRequestObservation, StatsQueryObservation

__all__ = ["Metrics", "RecordedRequestObservation", "StatsQueryObservation", "get_metrics"]


@lru_cache(maxsize=1)
def get_metrics() -> Metrics:
    return Metrics()
