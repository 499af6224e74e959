from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final, Protocol

import aiohttp
from aiohttp_retry import ExponentialRetry

from app.core.clients.http import HttpClient, get_http_client
from app.core.config.settings import get_settings
from app.core.errors import parse_dashboard_error
from app.modules.token_stats.types import (
    GET_TOKEN_STATS_BY_ACCOUNT,
    GET_TOKEN_STATS_DAILY,
    GET_TOKEN_STATS_HOURLY,
    GET_TOKEN_STATS_SUMMARY,
    GET_TOKEN_STATS_WEEKLY,
)

logger = logging.getLogger(__name__)

# backend call name -> (route, single integer argument)
BACKEND_ROUTES: Final[dict[str, tuple[str, str]]] = {
    GET_TOKEN_STATS_HOURLY: ("/api/token-stats/hourly", "hours"),
    GET_TOKEN_STATS_DAILY: ("/api/token-stats/daily", "days"),
    GET_TOKEN_STATS_WEEKLY: ("/api/token-stats/weekly", "weeks"),
    GET_TOKEN_STATS_BY_ACCOUNT: ("/api/token-stats/by-account", "hours"),
    GET_TOKEN_STATS_SUMMARY: ("/api/token-stats/summary", "hours"),
}

_RETRY_STATUSES: Final[set[int]] = {502, 503, 504}


class BackendInvoker(Protocol):
    async def invoke(self, command: str, args: Mapping[str, Any] | None = None) -> Any: ...


class TokenStatsClientError(Exception):
    def __init__(self, message: str, *, status: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class TokenStatsClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        http_client: HttpClient | None = None,
        max_attempts: int | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._http_client = http_client
        self._max_attempts = max_attempts or settings.client_max_attempts

    async def invoke(self, command: str, args: Mapping[str, Any] | None = None) -> Any:
        route = BACKEND_ROUTES.get(command)
        if route is None:
            raise ValueError(f"Unknown backend call: {command}")
        path, param = route
        values = dict(args or {})
        if param not in values:
            raise ValueError(f"{command} requires argument '{param}'")

        client = self._http_client or get_http_client()
        retry_options = ExponentialRetry(attempts=self._max_attempts, statuses=_RETRY_STATUSES)
        url = f"{self._base_url}{path}"
        try:
            async with client.retry_client.get(
                url,
                params={param: str(int(values[param]))},
                retry_options=retry_options,
            ) as response:
                if response.status >= 400:
                    payload = await _read_json(response)
                    detail = parse_dashboard_error(payload)
                    code = detail["code"] if detail else None
                    message = detail["message"] if detail and detail["message"] else f"HTTP {response.status}"
                    raise TokenStatsClientError(
                        f"{command} failed: {message}",
                        status=response.status,
                        code=code,
                    )
                return await response.json(content_type=None)
        except aiohttp.ClientError as exc:
            logger.debug("Backend call transport failure command=%s url=%s", command, url, exc_info=True)
            raise TokenStatsClientError(f"{command} failed: {exc}") from exc


async def _read_json(response: Any) -> object:
    try:
        return await response.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError):
        return None
