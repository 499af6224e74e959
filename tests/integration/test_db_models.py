from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.utils.time import utcnow
from app.db.models import RequestLog
from app.db.session import SessionLocal, get_session

pytestmark = pytest.mark.integration


def _make_log(request_id: str = "req_rollback") -> RequestLog:
    return RequestLog(
        account_email="rollback@example.com",
        request_id=request_id,
        model="gemini-2.5-pro",
        requested_at=utcnow(),
        input_tokens=None,
        output_tokens=None,
    )


@pytest.mark.asyncio
async def test_request_log_defaults_to_success(db_setup):
    async with SessionLocal() as session:
        log = _make_log("req_default")
        session.add(log)
        await session.commit()
        await session.refresh(log)

    assert log.status == "success"
    assert log.id is not None


@pytest.mark.asyncio
async def test_request_log_requires_account_email(db_setup):
    async with SessionLocal() as session:
        log = _make_log("req_missing_email")
        log.account_email = None  # type: ignore[assignment]
        session.add(log)
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_get_session_rolls_back_on_error(db_setup, monkeypatch):
    called = {"rollback": False}
    original = AsyncSession.rollback

    async def wrapped(self):
        called["rollback"] = True
        await original(self)

    monkeypatch.setattr(AsyncSession, "rollback", wrapped)

    sessions = get_session()
    session = await sessions.__anext__()
    session.add(_make_log())
    await session.flush()
    with pytest.raises(RuntimeError):
        await sessions.athrow(RuntimeError("boom"))

    async with SessionLocal() as session:
        result = await session.execute(select(RequestLog).where(RequestLog.request_id == "req_rollback"))
        assert result.scalar_one_or_none() is None

    assert called["rollback"] is True
