from __future__ import annotations

import argparse
import copy
import logging
import os
from dataclasses import replace
from pathlib import Path

import anyio
import uvicorn
import uvicorn.config

from app.core.config.settings import get_settings


def _build_log_config() -> dict:
    # Uvicorn's default LOGGING_CONFIG does not attach handlers to the `app.*` logger namespace.
    config = copy.deepcopy(uvicorn.config.LOGGING_CONFIG)
    loggers = config.setdefault("loggers", {})
    loggers["app"] = {
        "handlers": ["default"],
        "level": "INFO",
        "propagate": False,
    }
    return config


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the token-stats API server.")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "2455")))
    parser.add_argument("--ssl-certfile", default=os.getenv("SSL_CERTFILE"))
    parser.add_argument("--ssl-keyfile", default=os.getenv("SSL_KEYFILE"))
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging for CLI commands.")

    subparsers = parser.add_subparsers(dest="command")

    stats = subparsers.add_parser("stats", help="Render the token usage view from a running server.")
    stats.add_argument(
        "--range",
        dest="time_range",
        choices=("hourly", "daily", "weekly"),
        default="daily",
        help="Time granularity (default: daily).",
    )
    stats.add_argument("--base-url", default=None, help="Server base URL (default: TOKEN_STATS_API_BASE_URL).")

    install = subparsers.add_parser("install", help="Provision this host and install the app as a systemd service.")
    install.add_argument("--install-dir", type=Path, default=None, help="Target directory (default: /opt/antigravity).")
    install.add_argument("--repo", default=None, help="GitHub repository to download releases from.")

    prune = subparsers.add_parser("prune", help="Delete request logs older than the retention window.")
    prune.add_argument("--days", type=int, default=None, help="Retention in days (default: TOKEN_STATS_RETENTION_DAYS).")

    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    settings = get_settings()

    if args.command is None:
        if bool(args.ssl_certfile) ^ bool(args.ssl_keyfile):
            raise SystemExit("Both --ssl-certfile and --ssl-keyfile must be provided together.")

        uvicorn.run(
            "app.main:app",
            host=args.host,
            port=args.port,
            ssl_certfile=args.ssl_certfile,
            ssl_keyfile=args.ssl_keyfile,
            log_config=_build_log_config(),
            access_log=settings.access_log_enabled,
        )
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "stats":
        from app.core.clients.http import close_http_client, init_http_client
        from app.core.clients.token_stats import TokenStatsClient
        from app.ui.render import render_view
        from app.ui.token_stats import TokenStatsView

        async def _run() -> None:
            http_client = await init_http_client()
            try:
                view = TokenStatsView(
                    TokenStatsClient(args.base_url, http_client=http_client),
                    time_range=args.time_range,
                )
                await view.fetch_data()
                print(render_view(view), end="")
            finally:
                await close_http_client()

        anyio.run(_run)
        return

    if args.command == "install":
        from app.deploy.installer import InstallConfig, Installer

        config = InstallConfig.from_settings(settings)
        if args.install_dir is not None:
            config = replace(config, install_dir=args.install_dir.expanduser().resolve())
        if args.repo:
            config = replace(config, repo=args.repo)
        raise SystemExit(Installer(config).run())

    if args.command == "prune":
        from app.db.session import SessionLocal, close_db, init_db
        from app.modules.request_logs.repository import RequestLogsRepository
        from app.modules.request_logs.service import RequestLogsService

        days = args.days if args.days is not None else settings.retention_days
        if days <= 0:
            raise SystemExit("--days must be > 0")

        async def _run() -> None:
            try:
                await init_db()
                async with SessionLocal() as session:
                    deleted = await RequestLogsService(RequestLogsRepository(session)).prune(days)
                print(f"pruned={deleted} retention_days={days}")
            finally:
                await close_db()

        anyio.run(_run)
        return

    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
