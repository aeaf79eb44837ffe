"""
Logging configuration for the HQMF parser.

Provides two console modes:
- **rich**: human-readable output through rich's log handler (default)
- **json**: one JSON object per line, for machine consumption

Usage:
    from hqmf.logging_config import configure_logging
    configure_logging(level=logging.DEBUG, json_mode=False)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "criteria_id"):
            entry["criteria_id"] = record.criteria_id
        if record.exc_info and record.exc_info[1]:
            entry["error"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(
    *,
    level: int = logging.WARNING,
    json_mode: bool = False,
    log_file: str | None = None,
    quiet: bool = False,
) -> None:
    """
    Configure the package logger.

    Args:
        level: Logging level for the ``hqmf`` logger tree.
        json_mode: If True, emit JSON lines on stderr instead of rich output.
        log_file: If set, also write JSON lines to this file.
        quiet: If True, suppress console output (file only).
    """
    logger = logging.getLogger("hqmf")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    if not quiet:
        if json_mode:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
        else:
            handler = RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
            )
        handler.setLevel(level)
        logger.addHandler(handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(JSONFormatter())
        logger.addHandler(fh)
