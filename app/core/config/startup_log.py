from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Final
from urllib.parse import SplitResult, urlsplit, urlunsplit

from app.core.config.settings import BASE_DIR, Settings, get_settings

logger = logging.getLogger(__name__)

_ENV_PREFIX: Final[str] = "TOKEN_STATS_"
_PROXY_ENV_KEYS: Final[tuple[str, ...]] = ("HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY", "ALL_PROXY")
_SECRET_MARKERS: Final[tuple[str, ...]] = (
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "ID_TOKEN",
    "API_TOKEN",
    "PASSWORD",
    "SECRET",
    "COOKIE",
    "DATABASE_URL",
)
_REDACT_VALUE: Final[str] = "***"
_USERINFO_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)?(?P<userinfo>[^@/]+)@(?P<rest>.*)$"
)


@dataclass(frozen=True, slots=True)
class StartupEnvSnapshot:
    values: dict[str, str | None]

    @classmethod
    def from_process_env(cls) -> StartupEnvSnapshot:
        values: dict[str, str | None] = {}
        for key in _PROXY_ENV_KEYS:
            values[key] = os.environ.get(key) or os.environ.get(key.lower())
        for key, value in os.environ.items():
            if key.startswith(_ENV_PREFIX):
                values[key] = value
        return cls(values=values)


def log_startup_config() -> None:
    settings = get_settings()
    if not settings.startup_log_config and not settings.startup_log_env:
        return

    env_files = (BASE_DIR / ".env", BASE_DIR / ".env.local")
    env_file_status = ", ".join(f"{path.name}={'present' if path.exists() else 'missing'}" for path in env_files)
    logger.info("Startup config: env_files=[%s]", env_file_status)

    if settings.startup_log_env:
        _log_env_snapshot(StartupEnvSnapshot.from_process_env())

    if settings.startup_log_config:
        _log_settings(settings)


def _log_env_snapshot(snapshot: StartupEnvSnapshot) -> None:
    logger.info("Startup env snapshot (allowlist):")
    for key, value in sorted(snapshot.values.items()):
        if value is None:
            logger.info("  %s=<unset>", key)
        elif key in _PROXY_ENV_KEYS:
            logger.info("  %s=%s", key, redact_url_credentials(value))
        else:
            logger.info("  %s=%s", key, redact_value(key, value))


def _log_settings(settings: Settings) -> None:
    data = settings.model_dump(mode="json")
    logger.info("Startup settings snapshot:")
    for key, value in sorted(data.items()):
        logger.info("  %s=%s", key, redact_value(key, value))


def redact_value(key: str, value: object) -> object:
    # Match on the setting name only; the env prefix itself contains "TOKEN".
    upper = key.upper().removeprefix(_ENV_PREFIX)
    if any(marker in upper for marker in _SECRET_MARKERS):
        return _REDACT_VALUE
    if upper.endswith("_KEY") and not upper.endswith("_KEY_FILE"):
        return _REDACT_VALUE
    if isinstance(value, str) and upper.endswith("_URL"):
        return redact_url_credentials(value)
    return value


def redact_url_credentials(value: str) -> str:
    if not value:
        return value

    # `user:pass@host:port` without a scheme parses as a path, so match it first.
    match = _USERINFO_RE.match(value)
    if match:
        scheme = match.group("scheme") or ""
        userinfo = match.group("userinfo")
        redacted = f"{_REDACT_VALUE}:{_REDACT_VALUE}" if ":" in userinfo else _REDACT_VALUE
        return f"{scheme}{redacted}@{match.group('rest')}"

    try:
        split = urlsplit(value)
    except ValueError:
        return _REDACT_VALUE

    if "@" not in split.netloc:
        return value

    userinfo, hostport = split.netloc.rsplit("@", 1)
    redacted = f"{_REDACT_VALUE}:{_REDACT_VALUE}" if ":" in userinfo else _REDACT_VALUE
    return urlunsplit(
        SplitResult(
            scheme=split.scheme,
            netloc=f"{redacted}@{hostport}",
            path=split.path,
            query=split.query,
            fragment=split.fragment,
        )
    )
