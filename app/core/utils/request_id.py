from __future__ import annotations

from contextvars import ContextVar, Token
from uuid import uuid4

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return _request_id.get()


def set_request_id(value: str) -> Token[str | None]:
    return _request_id.set(value)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id.reset(token)


def ensure_request_id(value: str | None = None) -> str:
    # Explicit id first, then the id of the HTTP request being served.
    if value:
        return value
    return get_request_id() or str(uuid4())
