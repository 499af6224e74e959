from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from app.core.config.settings import get_settings
from app.core.metrics import get_metrics
from app.db.session import SessionLocal, _safe_close, _safe_rollback
from app.modules.request_logs.repository import RequestLogsRepository
from app.modules.request_logs.service import RequestLogsService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RetentionScheduler:
    interval_seconds: int
    retention_days: int
    enabled: bool
    _task: asyncio.Task[None] | None = None
    _stop: asyncio.Event = field(default_factory=asyncio.Event)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def start(self) -> None:
        if not self.enabled:
            return
        if self._task and not self._task.done():
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run_loop(self) -> None:
        while not self._stop.is_set():
            await self.prune_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def prune_once(self) -> int:
        async with self._lock:
            session = SessionLocal()
            try:
                service = RequestLogsService(RequestLogsRepository(session))
                deleted = await service.prune(self.retention_days)
                get_metrics().observe_pruned_logs(deleted)
                return deleted
            except Exception:
                logger.exception("Request log retention pass failed")
                return 0
            finally:
                if session.in_transaction():
                    await _safe_rollback(session)
                await _safe_close(session)


def build_retention_scheduler() -> RetentionScheduler:
    settings = get_settings()
    return RetentionScheduler(
        interval_seconds=settings.retention_interval_seconds,
        retention_days=settings.retention_days,
        enabled=settings.retention_enabled,
    )
