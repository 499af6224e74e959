from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import AsyncIterator, Awaitable, TypeVar

import anyio
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config.settings import get_settings

_settings = get_settings()

logger = logging.getLogger(__name__)

_SQLITE_BUSY_TIMEOUT_MS = 5_000
_SQLITE_BUSY_TIMEOUT_SECONDS = _SQLITE_BUSY_TIMEOUT_MS / 1000


def _is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite+aiosqlite:///") or url.startswith("sqlite:///")


def _is_sqlite_memory_url(url: str) -> bool:
    return _is_sqlite_url(url) and ":memory:" in url


def _configure_sqlite_engine(engine: Engine, *, enable_wal: bool) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection: sqlite3.Connection, _: object) -> None:
        cursor: sqlite3.Cursor = dbapi_connection.cursor()
        try:
            if enable_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
        finally:
            cursor.close()


_DATABASE_URL = _settings.database_url


def _build_engine(url: str) -> AsyncEngine:
    if _is_sqlite_url(url):
        is_sqlite_memory = _is_sqlite_memory_url(url)
        if is_sqlite_memory:
            engine = create_async_engine(
                url,
                echo=False,
                connect_args={"timeout": _SQLITE_BUSY_TIMEOUT_SECONDS},
            )
        else:
            engine = create_async_engine(
                url,
                echo=False,
                pool_size=_settings.database_pool_size,
                max_overflow=_settings.database_max_overflow,
                pool_timeout=_settings.database_pool_timeout_seconds,
                connect_args={"timeout": _SQLITE_BUSY_TIMEOUT_SECONDS},
            )
        _configure_sqlite_engine(engine.sync_engine, enable_wal=not is_sqlite_memory)
        return engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=_settings.database_pool_size,
        max_overflow=_settings.database_max_overflow,
        pool_timeout=_settings.database_pool_timeout_seconds,
    )


engine = _build_engine(_DATABASE_URL)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

_T = TypeVar("_T")


def _sqlite_path(url: str) -> Path | None:
    if not _is_sqlite_url(url):
        return None
    path = url.split(":///", 1)[1].partition("?")[0].partition("#")[0]
    if not path or path == ":memory:":
        return None
    return Path(path).expanduser()


def _integrity_error(path: Path) -> str | None:
    if not path.exists():
        return None
    try:
        with sqlite3.connect(str(path)) as conn:
            rows = [str(row[0]) for row in conn.execute("PRAGMA integrity_check;").fetchall()]
    except sqlite3.DatabaseError as exc:
        return str(exc)
    if rows == ["ok"]:
        return None
    return "; ".join(rows) or "integrity_check returned no rows"


async def _shielded(awaitable: Awaitable[_T]) -> _T:
    with anyio.CancelScope(shield=True):
        return await awaitable


async def _safe_rollback(session: AsyncSession) -> None:
    if not session.in_transaction():
        return
    try:
        await _shielded(session.rollback())
    except BaseException:
        return


async def _safe_close(session: AsyncSession) -> None:
    try:
        await _shielded(session.close())
    except BaseException:
        return


async def get_session() -> AsyncIterator[AsyncSession]:
    session = SessionLocal()
    try:
        yield session
    except BaseException:
        await _safe_rollback(session)
        raise
    finally:
        if session.in_transaction():
            await _safe_rollback(session)
        await _safe_close(session)


async def init_db() -> None:
    from app.db.models import Base

    sqlite_path = _sqlite_path(_DATABASE_URL)
    if sqlite_path is not None:
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        details = _integrity_error(sqlite_path)
        if details is not None:
            logger.error("SQLite integrity check failed path=%s details=%s", sqlite_path, details)
            if "locked" in details.lower():
                message = f"SQLite integrity check failed for {sqlite_path} ({details}). Another instance may be running."
            else:
                message = (
                    f"SQLite integrity check failed for {sqlite_path} ({details}). "
                    "The database appears corrupted or the filesystem is unhealthy. "
                    "Stop the service and restore a backup."
                )
            raise RuntimeError(message)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
