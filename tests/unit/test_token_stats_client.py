from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from app.core.clients.http import HttpClient
from app.core.clients.token_stats import TokenStatsClient, TokenStatsClientError

pytestmark = pytest.mark.unit


class StubResponse:
    def __init__(self, status: int, payload: Any) -> None:
        self.status = status
        self._payload = payload

    async def json(self, content_type: str | None = None) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@dataclass
class ClientState:
    urls: list[str] = field(default_factory=list)
    params: list[dict[str, str]] = field(default_factory=list)
    attempts: list[int] = field(default_factory=list)


class StubRequestContext:
    def __init__(self, response: StubResponse | Exception) -> None:
        self._response = response

    async def __aenter__(self) -> StubResponse:
        if isinstance(self._response, Exception):
            raise self._response
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class StubRetryClient:
    def __init__(self, response: StubResponse | Exception, state: ClientState) -> None:
        self._response = response
        self._state = state

    def get(self, url: str, params: dict[str, str], retry_options: Any) -> StubRequestContext:
        self._state.urls.append(url)
        self._state.params.append(params)
        self._state.attempts.append(retry_options.attempts)
        return StubRequestContext(self._response)


def _client(response: StubResponse | Exception, state: ClientState) -> TokenStatsClient:
    http_client = HttpClient(session=None, retry_client=StubRetryClient(response, state))  # type: ignore[arg-type]
    return TokenStatsClient("http://backend:2455/", http_client=http_client)


async def test_invoke_maps_call_to_route_and_params() -> None:
    state = ClientState()
    client = _client(StubResponse(200, [{"period": "2024-05-01"}]), state)

    payload = await client.invoke("get_token_stats_daily", {"days": 7})

    assert payload == [{"period": "2024-05-01"}]
    assert state.urls == ["http://backend:2455/api/token-stats/daily"]
    assert state.params == [{"days": "7"}]
    assert state.attempts == [1]


async def test_invoke_by_account_uses_hours() -> None:
    state = ClientState()
    client = _client(StubResponse(200, []), state)

    await client.invoke("get_token_stats_by_account", {"hours": 720})

    assert state.urls == ["http://backend:2455/api/token-stats/by-account"]
    assert state.params == [{"hours": "720"}]


async def test_invoke_rejects_unknown_call() -> None:
    client = _client(StubResponse(200, []), ClientState())

    with pytest.raises(ValueError, match="Unknown backend call"):
        await client.invoke("get_token_stats_monthly", {"months": 1})


async def test_invoke_requires_argument() -> None:
    client = _client(StubResponse(200, []), ClientState())

    with pytest.raises(ValueError, match="hours"):
        await client.invoke("get_token_stats_summary", {})


async def test_invoke_surfaces_dashboard_error() -> None:
    payload = {"error": {"code": "validation_error", "message": "Invalid request payload"}}
    client = _client(StubResponse(422, payload), ClientState())

    with pytest.raises(TokenStatsClientError) as excinfo:
        await client.invoke("get_token_stats_hourly", {"hours": 24})

    assert excinfo.value.status == 422
    assert excinfo.value.code == "validation_error"
    assert "Invalid request payload" in str(excinfo.value)


async def test_invoke_error_without_json_body() -> None:
    client = _client(StubResponse(502, None), ClientState())

    with pytest.raises(TokenStatsClientError) as excinfo:
        await client.invoke("get_token_stats_hourly", {"hours": 24})

    assert excinfo.value.status == 502
    assert excinfo.value.code is None


async def test_invoke_wraps_transport_errors() -> None:
    client = _client(aiohttp.ClientConnectionError("refused"), ClientState())

    with pytest.raises(TokenStatsClientError, match="refused"):
        await client.invoke("get_token_stats_weekly", {"weeks": 4})
