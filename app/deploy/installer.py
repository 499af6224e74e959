"""Provision a Linux host with the packaged desktop app running as a systemd service.

The steps run strictly in order and every failure is fatal: nothing is retried
and partially applied steps are not rolled back.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
import shutil
import stat
import subprocess
import sys
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, TextIO

from app.core.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

APP_IMAGE_NAME: Final[str] = "antigravity.AppImage"
VERSION_FILE_NAME: Final[str] = ".version"
DATA_DIR_NAME: Final[str] = ".antigravity_tools"
GUI_CONFIG_NAME: Final[str] = "gui_config.json"
LOG_FILE: Final[str] = "logs/app.log"
XVFB_RUN: Final[str] = "/usr/bin/xvfb-run"

_USER_AGENT: Final[str] = "token-stats-installer"


class InstallError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class PackageManager:
    binary: str
    packages: tuple[str, ...]
    install_flags: tuple[str, ...]
    update_flags: tuple[str, ...] | None = None

    def install_command(self) -> list[str]:
        return [self.binary, "install", *self.install_flags, *self.packages]

    def update_command(self) -> list[str] | None:
        if self.update_flags is None:
            return None
        return [self.binary, "update", *self.update_flags]


PACKAGE_MANAGERS: Final[tuple[PackageManager, ...]] = (
    PackageManager(
        binary="apt-get",
        packages=("xvfb", "libharfbuzz0b", "libwebkit2gtk-4.1-0", "libgtk-3-0", "wget", "curl", "jq"),
        install_flags=("-y", "-qq"),
        update_flags=("-qq",),
    ),
    PackageManager(
        binary="dnf",
        packages=("xorg-x11-server-Xvfb", "harfbuzz", "webkit2gtk4.1", "gtk3", "wget", "curl", "jq"),
        install_flags=("-y", "-q"),
    ),
    PackageManager(
        binary="yum",
        packages=("xorg-x11-server-Xvfb", "harfbuzz", "webkit2gtk3", "gtk3", "wget", "curl", "jq"),
        install_flags=("-y", "-q"),
    ),
)


@dataclass(frozen=True, slots=True)
class InstallConfig:
    repo: str
    install_dir: Path
    service_name: str
    proxy_port: int
    health_check_delay_seconds: float
    http_timeout_seconds: float
    github_api_base_url: str
    github_download_base_url: str
    unit_dir: Path

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> InstallConfig:
        settings = settings or get_settings()
        return cls(
            repo=settings.install_repo,
            install_dir=settings.install_dir,
            service_name=settings.install_service_name,
            proxy_port=settings.install_proxy_port,
            health_check_delay_seconds=settings.install_health_check_delay_seconds,
            http_timeout_seconds=settings.install_http_timeout_seconds,
            github_api_base_url=settings.github_api_base_url,
            github_download_base_url=settings.github_download_base_url,
            unit_dir=settings.systemd_unit_dir,
        )

    @property
    def latest_release_url(self) -> str:
        return f"{self.github_api_base_url}/repos/{self.repo}/releases/latest"

    def download_url(self, version: str) -> str:
        return (
            f"{self.github_download_base_url}/{self.repo}/releases/latest/download/"
            f"Antigravity.Tools_{version}_amd64.AppImage"
        )

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / f"{self.service_name}.service"


def run_command(args: Sequence[str]) -> int:
    logger.debug("Running command args=%s", list(args))
    try:
        return subprocess.run(list(args), check=False).returncode
    except FileNotFoundError:
        return 127


def fetch_json(url: str, timeout_seconds: float) -> Any:
    request = urllib.request.Request(
        url,
        headers={"Accept": "application/vnd.github+json", "User-Agent": _USER_AGENT},
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout_seconds) as response:
            return json.loads(response.read())
    except (urllib.error.URLError, http.client.HTTPException, TimeoutError, json.JSONDecodeError) as exc:
        raise InstallError(f"request failed for {url}: {exc}") from exc


def download_file(url: str, destination: Path, timeout_seconds: float) -> None:
    partial = destination.with_name(destination.name + ".part")
    request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout_seconds) as response, partial.open("wb") as handle:
            shutil.copyfileobj(response, handle)
    except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
        partial.unlink(missing_ok=True)
        raise InstallError(f"download failed for {url}: {exc}") from exc
    partial.replace(destination)


def render_service_unit(install_dir: Path) -> str:
    log_path = install_dir / LOG_FILE
    return (
        "[Unit]\n"
        "Description=Antigravity Tools\n"
        "After=network.target\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"WorkingDirectory={install_dir}\n"
        f'Environment="HOME={install_dir}"\n'
        f"ExecStart={XVFB_RUN} -a {install_dir / APP_IMAGE_NAME}\n"
        "Restart=always\n"
        f"StandardOutput=append:{log_path}\n"
        f"StandardError=append:{log_path}\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def default_gui_config(port: int) -> dict[str, Any]:
    return {"proxy": {"enabled": True, "auto_start": True, "port": port}}


class Installer:
    def __init__(
        self,
        config: InstallConfig,
        *,
        runner: Callable[[Sequence[str]], int] = run_command,
        which: Callable[[str], str | None] = shutil.which,
        geteuid: Callable[[], int] = os.geteuid,
        sleep: Callable[[float], None] = time.sleep,
        get_json: Callable[[str, float], Any] = fetch_json,
        download: Callable[[str, Path, float], None] = download_file,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._which = which
        self._geteuid = geteuid
        self._sleep = sleep
        self._get_json = get_json
        self._download = download
        self._out = out or sys.stdout
        self._err = err or sys.stderr

    def run(self) -> int:
        try:
            self.check_privileges()
            self._say("[1/4] Installing dependencies...")
            self.install_dependencies()
            self._say("[2/4] Downloading application...")
            version = self.resolve_version()
            self.download_release(version)
            self._say("[3/4] Initializing directories...")
            self.bootstrap_directories()
            self._say("[4/4] Installing service...")
            self.install_service()
            self.verify_service()
        except (InstallError, OSError) as exc:
            logger.debug("Install aborted", exc_info=True)
            print(f"Error: {exc}", file=self._err)
            return 1
        self._say(f"Deployment complete! version v{version}, port {self._config.proxy_port}")
        return 0

    def check_privileges(self) -> None:
        if self._geteuid() != 0:
            raise InstallError("root privileges required, re-run with sudo")

    def detect_package_manager(self) -> PackageManager:
        for manager in PACKAGE_MANAGERS:
            if self._which(manager.binary):
                return manager
        raise InstallError(
            "unsupported package manager, install manually: xvfb, libwebkit2gtk, libgtk-3, wget, curl, jq"
        )

    def install_dependencies(self) -> None:
        manager = self.detect_package_manager()
        update = manager.update_command()
        if update is not None and self._runner(update) != 0:
            print(f"Warning: {manager.binary} update partially failed, trying to install anyway...", file=self._err)
        if self._runner(manager.install_command()) != 0:
            raise InstallError("dependency installation failed, check package mirrors or install manually")

    def resolve_version(self) -> str:
        try:
            payload = self._get_json(self._config.latest_release_url, self._config.http_timeout_seconds)
        except InstallError as exc:
            raise InstallError(f"unable to resolve latest version ({exc}); GitHub API may be rate limiting") from exc
        tag = payload.get("tag_name") if isinstance(payload, dict) else None
        version = tag.removeprefix("v") if isinstance(tag, str) else ""
        if not version:
            raise InstallError("unable to resolve latest version; GitHub API may be rate limiting")
        return version

    def download_release(self, version: str) -> Path:
        install_dir = self._config.install_dir
        install_dir.mkdir(parents=True, exist_ok=True)
        target = install_dir / APP_IMAGE_NAME
        self._download(self._config.download_url(version), target, self._config.http_timeout_seconds)
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        (install_dir / VERSION_FILE_NAME).write_text(f"{version}\n", encoding="utf-8")
        return target

    def bootstrap_directories(self) -> None:
        install_dir = self._config.install_dir
        data_dir = install_dir / DATA_DIR_NAME
        (data_dir / "accounts").mkdir(parents=True, exist_ok=True)
        (install_dir / "logs").mkdir(parents=True, exist_ok=True)
        gui_config = data_dir / GUI_CONFIG_NAME
        if not gui_config.exists():
            gui_config.write_text(
                json.dumps(default_gui_config(self._config.proxy_port), separators=(",", ":")) + "\n",
                encoding="utf-8",
            )

    def install_service(self) -> None:
        unit_path = self._config.unit_path
        unit_path.parent.mkdir(parents=True, exist_ok=True)
        unit_path.write_text(render_service_unit(self._config.install_dir), encoding="utf-8")
        name = self._config.service_name
        for args in (
            ["systemctl", "daemon-reload"],
            ["systemctl", "enable", name],
            ["systemctl", "start", name],
        ):
            if self._runner(args) != 0:
                raise InstallError(f"`{' '.join(args)}` failed")

    def verify_service(self) -> None:
        self._sleep(self._config.health_check_delay_seconds)
        if self._runner(["systemctl", "is-active", "--quiet", self._config.service_name]) != 0:
            raise InstallError(f"service failed to start, see {self._config.install_dir / LOG_FILE}")

    def _say(self, message: str) -> None:
        print(message, file=self._out)
