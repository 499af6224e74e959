from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[3]

DOCKER_DATA_DIR = Path("/var/lib/token-stats")


def _in_container() -> bool:
    return Path("/.dockerenv").exists() or Path("/run/.containerenv").exists()


def _default_home_dir() -> Path:
    if _in_container():
        return DOCKER_DATA_DIR
    return Path.home() / ".token-stats"


DEFAULT_HOME_DIR = _default_home_dir()
DEFAULT_DB_PATH = DEFAULT_HOME_DIR / "store.db"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOKEN_STATS_",
        env_file=(BASE_DIR / ".env", BASE_DIR / ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = f"sqlite+aiosqlite:///{DEFAULT_DB_PATH}"
    database_pool_size: int = Field(default=15, gt=0)
    database_max_overflow: int = Field(default=10, ge=0)
    database_pool_timeout_seconds: float = Field(default=30.0, gt=0)
    access_log_enabled: bool = False
    startup_log_config: bool = False
    startup_log_env: bool = False

    http_client_connector_limit: int = Field(default=100, gt=0)
    http_client_connector_limit_per_host: int = Field(default=20, gt=0)
    http_client_keepalive_timeout_seconds: float = Field(default=15.0, gt=0)
    http_client_dns_cache_ttl_seconds: int = Field(default=300, ge=0)

    # Where `token-stats stats` sends its backend calls.
    api_base_url: str = "http://127.0.0.1:2455"
    client_timeout_seconds: float = Field(default=10.0, gt=0)
    # 1 means a single attempt; backend calls are not retried unless raised.
    client_max_attempts: int = Field(default=1, gt=0)

    retention_enabled: bool = True
    retention_days: int = Field(default=90, gt=0)
    retention_interval_seconds: int = Field(default=3600, gt=0)

    install_repo: str = "lbjlaq/Antigravity-Manager"
    install_dir: Path = Path("/opt/antigravity")
    install_service_name: str = "antigravity"
    install_proxy_port: int = Field(default=8045, gt=0, lt=65536)
    install_health_check_delay_seconds: float = Field(default=3.0, ge=0)
    install_http_timeout_seconds: float = Field(default=60.0, gt=0)
    github_api_base_url: str = "https://api.github.com"
    github_download_base_url: str = "https://github.com"
    systemd_unit_dir: Path = Path("/etc/systemd/system")

    @field_validator("database_url")
    @classmethod
    def _expand_database_url(cls, value: str) -> str:
        for prefix in ("sqlite+aiosqlite:///", "sqlite:///"):
            if value.startswith(prefix):
                path = value[len(prefix) :]
                if path.startswith("~"):
                    return f"{prefix}{Path(path).expanduser()}"
        return value

    @field_validator("install_dir", "systemd_unit_dir", mode="before")
    @classmethod
    def _expand_paths(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path")

    @field_validator("api_base_url", "github_api_base_url", "github_download_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
