from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.modules.request_logs.repository import RequestLogsRepository
from app.modules.request_logs.service import RequestLogsService
from app.modules.token_stats.repository import TokenStatsRepository
from app.modules.token_stats.service import TokenStatsService


@dataclass(slots=True)
class RequestLogsContext:
    session: AsyncSession
    repository: RequestLogsRepository
    service: RequestLogsService


@dataclass(slots=True)
class TokenStatsContext:
    session: AsyncSession
    repository: TokenStatsRepository
    service: TokenStatsService


def get_request_logs_context(
    session: AsyncSession = Depends(get_session),
) -> RequestLogsContext:
    repository = RequestLogsRepository(session)
    service = RequestLogsService(repository)
    return RequestLogsContext(session=session, repository=repository, service=service)


def get_token_stats_context(
    session: AsyncSession = Depends(get_session),
) -> TokenStatsContext:
    repository = TokenStatsRepository(session)
    service = TokenStatsService(repository)
    return TokenStatsContext(session=session, repository=repository, service=service)
