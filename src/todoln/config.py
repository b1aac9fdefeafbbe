# src/todoln/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every path can be overridden, so tests and scripts never touch the real data dir.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODOLN"
APP_DIR_NAME = "todoln"
DB_FILENAME = "todoln.db"
DEFAULT_BACKUP_NAME = "todoln_backup.db"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def platform_data_dir() -> Path:
    """Per-user local data directory for the current platform."""
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA")
        if base:
            return Path(base)
        return Path.home() / "AppData" / "Local"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg = os.getenv("XDG_DATA_HOME")
    if xdg and Path(xdg).is_absolute():
        return Path(xdg)
    return Path.home() / ".local" / "share"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths ----
    data_dir: Path
    tasks_db_path: Path
    log_dir: Path

    # ---- Backup ----
    backup_name: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todoln").strip() or "todoln"
        # Console level only; the log file always gets DEBUG.
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        data_dir = _env_path(_k("DATA_DIR"), platform_data_dir() / APP_DIR_NAME)
        tasks_db_path = _env_path(_k("DB_PATH"), data_dir / DB_FILENAME)
        log_dir = _env_path(_k("LOG_DIR"), data_dir)

        backup_name = _env(_k("BACKUP_NAME"), DEFAULT_BACKUP_NAME).strip() or DEFAULT_BACKUP_NAME

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            log_dir=log_dir,
            backup_name=backup_name,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
