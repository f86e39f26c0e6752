"""FacetSearch logging utilities.

One package logger (``FacetSearch``) shared by every module. Records are
prefixed with a timestamp and a four-letter level tag.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Final


_LEVEL_TAGS: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "CRIT",
}

_FORMAT: Final[str] = "%(asctime)s [%(leveltag)s] %(name)s: %(message)s"
_DATE_FORMAT: Final[str] = "%m-%d %H:%M:%S"


class _LevelTagFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - stdlib method name
        record.leveltag = _LEVEL_TAGS.get(record.levelno, record.levelname[:4])
        return super().format(record)


log = logging.getLogger("FacetSearch")


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = False,
    log_dir: str = "log",
) -> Path | None:
    """Configure the FacetSearch logger.

    The console handler follows ``level``; the optional file handler always
    records DEBUG so a failing CLI run can be replayed from its log.

    Args:
        level: Logging level name (e.g. INFO, DEBUG).
        action: CLI action name, used for the log file name.
        log_to_file: Whether to mirror records to ``<log_dir>/<action>_<ts>.log``.
        log_dir: Base directory for log files.

    Returns:
        Path of the log file, or None when file logging is off.
    """
    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    formatter = _LevelTagFormatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(resolved)
    console.setFormatter(formatter)

    log.handlers.clear()
    log.addHandler(console)

    log_path: Path | None = None
    if log_to_file and action:
        log_root = Path(log_dir or "log")
        log_root.mkdir(parents=True, exist_ok=True)
        log_path = log_root / f"{action}_{datetime.now():%m%d%H%M%S}.log"
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    log.setLevel(logging.DEBUG if log_path else resolved)
    log.propagate = False
    return log_path
