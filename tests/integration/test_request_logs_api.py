from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.utils.time import utcnow
from app.db.session import SessionLocal
from app.modules.request_logs.repository import RequestLogsRepository

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_request_logs_api_returns_recent(async_client, db_setup):
    async with SessionLocal() as session:
        logs_repo = RequestLogsRepository(session)
        now = utcnow()
        await logs_repo.add_log(
            account_email="logs@example.com",
            request_id="req_logs_1",
            model="gemini-2.5-pro",
            input_tokens=100,
            output_tokens=200,
            requested_at=now - timedelta(minutes=1),
        )
        await logs_repo.add_log(
            account_email="other@example.com",
            request_id="req_logs_2",
            model="gemini-2.5-flash",
            input_tokens=50,
            output_tokens=None,
            status="error",
            requested_at=now,
        )

    response = await async_client.get("/api/request-logs?limit=2")
    assert response.status_code == 200
    payload = response.json()["requests"]
    assert [entry["requestId"] for entry in payload] == ["req_logs_2", "req_logs_1"]
    assert payload[0]["status"] == "error"
    assert payload[0]["tokens"] == 50
    assert payload[1]["accountEmail"] == "logs@example.com"
    assert payload[1]["tokens"] == 300
    assert payload[1]["requestedAt"].endswith("Z")

    filtered = await async_client.get("/api/request-logs", params={"accountEmail": "logs@example.com"})
    assert filtered.status_code == 200
    assert [entry["requestId"] for entry in filtered.json()["requests"]] == ["req_logs_1"]


@pytest.mark.asyncio
async def test_request_logs_api_records_entry(async_client, db_setup):
    response = await async_client.post(
        "/api/request-logs",
        json={
            "accountEmail": "  writer@example.com ",
            "model": "gemini-2.5-pro",
            "inputTokens": 12,
            "outputTokens": 8,
        },
        headers={"x-request-id": "req_inbound"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["accountEmail"] == "writer@example.com"
    assert body["requestId"] == "req_inbound"
    assert body["tokens"] == 20
    assert body["status"] == "success"

    summary = await async_client.get("/api/token-stats/summary", params={"hours": 1})
    assert summary.json()["total_tokens"] == 20


@pytest.mark.asyncio
async def test_request_logs_api_rejects_negative_tokens(async_client, db_setup):
    response = await async_client.post(
        "/api/request-logs",
        json={"accountEmail": "a@example.com", "model": "m", "inputTokens": -1},
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"
