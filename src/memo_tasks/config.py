# src/memo_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets at import time: WebDAV credentials live in the preferences file,
  not in the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "MEMO"

DB_FILE_NAME = "memo.db"
DEFAULT_REMOTE_DIR = "memo"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv() -> None:
    """Load .env from the working directory; variables already set win."""
    load_dotenv(override=False)


_load_dotenv()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_to_file: bool

    # ---- Local data paths ----
    data_dir: Path
    db_path: Path
    prefs_path: Path

    # ---- Remote sync ----
    remote_dir: str
    # None keeps the transport's own default timeout.
    webdav_timeout_seconds: Optional[float]
    upload_chunk_size: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "memo") or "memo"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        log_to_file = _env_bool(_k("LOG_TO_FILE"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/memo"))
        db_path = _env_path(_k("DB_PATH"), data_dir / DB_FILE_NAME)
        prefs_path = _env_path(_k("PREFS_PATH"), data_dir / "prefs.json")

        remote_dir = (_env(_k("REMOTE_DIR"), DEFAULT_REMOTE_DIR) or DEFAULT_REMOTE_DIR).strip("/")
        webdav_timeout_seconds = _env_float(_k("WEBDAV_TIMEOUT_SECONDS"), None)
        upload_chunk_size = max(1024, _env_int(_k("UPLOAD_CHUNK_SIZE"), 64 * 1024))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_to_file=log_to_file,
            data_dir=data_dir,
            db_path=db_path,
            prefs_path=prefs_path,
            remote_dir=remote_dir or DEFAULT_REMOTE_DIR,
            webdav_timeout_seconds=webdav_timeout_seconds,
            upload_chunk_size=upload_chunk_size,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
