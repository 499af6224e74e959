from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import ResourceClosedError

from app.core.utils.request_id import reset_request_id, set_request_id
from app.db.models import RequestLog
from app.db.session import SessionLocal
from app.modules.request_logs.repository import RequestLogsRepository
from app.modules.request_logs.schemas import RequestLogCreate
from app.modules.request_logs.service import RequestLogsService


@pytest.mark.asyncio
async def test_add_log_takes_request_id_from_context(db_setup) -> None:
    token = set_request_id("req_from_middleware")
    try:
        async with SessionLocal() as session:
            log = await RequestLogsRepository(session).add_log(
                account_email="ctx@example.com",
                model="gemini-2.5-pro",
                input_tokens=5,
                output_tokens=None,
            )
    finally:
        reset_request_id(token)

    assert log.request_id == "req_from_middleware"
    assert log.status == "success"


@pytest.mark.asyncio
async def test_add_log_returns_entry_when_session_closed_mid_commit(monkeypatch) -> None:
    async with SessionLocal() as session:
        async def _closed_commit() -> None:
            raise ResourceClosedError("This transaction is closed")

        monkeypatch.setattr(session, "commit", _closed_commit)

        log = await RequestLogsRepository(session).add_log(
            account_email="closed@example.com",
            model="gemini-2.5-flash",
            input_tokens=1,
            output_tokens=2,
            request_id="req_closed",
        )

    assert log.account_email == "closed@example.com"
    assert log.request_id == "req_closed"


@pytest.mark.asyncio
async def test_add_log_propagates_commit_failure_without_persisting(db_setup, monkeypatch) -> None:
    async with SessionLocal() as session:
        async def _failing_commit() -> None:
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(session, "commit", _failing_commit)

        with pytest.raises(RuntimeError, match="disk I/O error"):
            await RequestLogsRepository(session).add_log(
                account_email="fail@example.com",
                model="gemini-2.5-pro",
                input_tokens=1,
                output_tokens=1,
                request_id="req_failed",
            )

    async with SessionLocal() as session:
        result = await session.execute(select(RequestLog).where(RequestLog.request_id == "req_failed"))
        assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_service_record_normalizes_email_and_timestamp(db_setup) -> None:
    payload = RequestLogCreate.model_validate(
        {
            "accountEmail": "  spaced@example.com ",
            "model": "gemini-2.5-pro",
            "inputTokens": 10,
            "outputTokens": 5,
            "requestedAt": "2024-05-01T15:30:00+02:00",
        }
    )

    async with SessionLocal() as session:
        entry = await RequestLogsService(RequestLogsRepository(session)).record(payload)

    assert entry.account_email == "spaced@example.com"
    assert entry.tokens == 15
    assert entry.requested_at.tzinfo is None
    assert (entry.requested_at.hour, entry.requested_at.minute) == (13, 30)
