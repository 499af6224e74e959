from __future__ import annotations

import pytest
from prometheus_client.parser import text_string_to_metric_families

pytestmark = pytest.mark.integration


def _sample_value(text: str, metric_name: str, labels: dict[str, str] | None = None) -> float | None:
    target_labels = labels or {}
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            if sample.name != metric_name:
                continue
            if all(sample.labels.get(k) == v for k, v in target_labels.items()):
                return float(sample.value)
    return None


@pytest.mark.asyncio
async def test_metrics_endpoint_exports_core_metrics(async_client, db_setup) -> None:
    recorded = await async_client.post(
        "/api/request-logs",
        json={"accountEmail": "metrics@example.com", "model": "gemini-2.5-pro", "inputTokens": 3, "outputTokens": 4},
    )
    assert recorded.status_code == 201
    stats = await async_client.get("/api/token-stats/by-account", params={"hours": 24})
    assert stats.status_code == 200

    response = await async_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["cache-control"] == "no-cache"

    text = response.text
    assert (_sample_value(text, "token_stats_recorded_requests_total", {"status": "success"}) or 0) >= 1.0
    assert (_sample_value(text, "token_stats_recorded_tokens_total", {"kind": "output"}) or 0) >= 4.0
    assert (
        _sample_value(text, "token_stats_queries_total", {"command": "get_token_stats_by_account"}) or 0
    ) >= 1.0
    assert _sample_value(text, "token_stats_query_rows", {"command": "get_token_stats_by_account"}) == 1.0
