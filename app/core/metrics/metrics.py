from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

_PROM_CONTENT_TYPE: Final[str] = "text/plain; version=0.0.4; charset=utf-8"


@dataclass(slots=True)
class RecordedRequestObservation:
    status: str
    input_tokens: int | None
    output_tokens: int | None


@dataclass(slots=True)
class StatsQueryObservation:
    command: str
    duration_seconds: float
    rows: int


class Metrics:
    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry(auto_describe=True)

        self._recorded_requests_total = Counter(
            "token_stats_recorded_requests_total",
            "Total request logs recorded.",
            labelnames=("status",),
            registry=self._registry,
        )
        self._recorded_tokens_total = Counter(
            "token_stats_recorded_tokens_total",
            "Total recorded tokens by kind.",
            labelnames=("kind",),
            registry=self._registry,
        )
        self._queries_total = Counter(
            "token_stats_queries_total",
            "Total token stats backend calls served.",
            labelnames=("command",),
            registry=self._registry,
        )
        self._query_duration_seconds = Histogram(
            "token_stats_query_duration_seconds",
            "Token stats query latency in seconds.",
            labelnames=("command",),
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5),
            registry=self._registry,
        )
        self._query_rows = Gauge(
            "token_stats_query_rows",
            "Rows returned by the most recent call per command.",
            labelnames=("command",),
            registry=self._registry,
        )
        self._pruned_logs_total = Counter(
            "token_stats_pruned_request_logs_total",
            "Total request logs deleted by retention.",
            registry=self._registry,
        )

    @property
    def content_type(self) -> str:
        return _PROM_CONTENT_TYPE

    def observe_recorded_request(self, obs: RecordedRequestObservation) -> None:
        self._recorded_requests_total.labels(status=obs.status or "unknown").inc()
        if obs.input_tokens:
            self._recorded_tokens_total.labels(kind="input").inc(max(0, obs.input_tokens))
        if obs.output_tokens:
            self._recorded_tokens_total.labels(kind="output").inc(max(0, obs.output_tokens))

    def observe_stats_query(self, obs: StatsQueryObservation) -> None:
        self._queries_total.labels(command=obs.command).inc()
        self._query_duration_seconds.labels(command=obs.command).observe(max(0.0, obs.duration_seconds))
        self._query_rows.labels(command=obs.command).set(obs.rows)

    def observe_pruned_logs(self, count: int) -> None:
        if count > 0:
            self._pruned_logs_total.inc(count)

    def render(self) -> bytes:
        return generate_latest(self._registry)
