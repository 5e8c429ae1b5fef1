# src/memo_tasks/logging_setup.py

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "memo.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console shows our own logs; everyone else only at ERROR+.

    The WebDAV client logs every request at DEBUG/INFO, which is useful in the
    file but drowns the prompt, so it only reaches the console at WARNING+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("memo_tasks.sync.webdav_client"):
            return record.levelno >= logging.WARNING
        if name.startswith("memo_tasks."):
            return True
        # Third-party libraries and captured warnings ('py.warnings').
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/memo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_to_file: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> None:
    """
    Console handler (filtered, stderr) plus an optional rotating file with everything.

    Replaces whatever handlers the root logger already has, so calling it twice
    does not duplicate output. Call before the first log line.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    if log_to_file:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            path / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
