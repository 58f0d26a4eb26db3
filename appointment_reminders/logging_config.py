"""Console and JSON-file logging for the reminder service.

Records emitted through :func:`get_category_logger` carry a ``category``
attribute (one of :data:`CATEGORIES`); everything else is labelled
``general``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Tuple

CATEGORIES: Tuple[str, ...] = (
    "reminder_sent",
    "reminder_skipped",
    "dispatch_failed",
    "cleanup",
    "schema",
    "error",
)

_RESET = "\x1b[0m"
_ANSI = {
    "reminder_sent": "\x1b[32m",
    "reminder_skipped": "\x1b[90m",
    "dispatch_failed": "\x1b[33m",
    "error": "\x1b[31m",
}


def _category(record: logging.LogRecord) -> str:
    return getattr(record, "category", "general")


class _ConsoleFormatter(logging.Formatter):
    def __init__(self, *, colour: bool) -> None:
        super().__init__("%(asctime)s %(levelname)s %(category_label)s %(message)s", "%Y-%m-%d %H:%M:%S")
        self._colour = colour

    def format(self, record: logging.LogRecord) -> str:
        category = _category(record)
        label = f"[{category}]"
        if self._colour and category in _ANSI:
            label = f"{_ANSI[category]}{label}{_RESET}"
        record.category_label = label
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "category": _category(record),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    *,
    log_file: str = "logs/app.log",
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    force: bool = True,
) -> None:
    """Attach a console handler and a JSON file handler to the root logger.

    With ``force`` the root logger's existing handlers are closed and
    removed first. The directory of ``log_file`` is created if needed.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(_ConsoleFormatter(colour=getattr(sys.stderr, "isatty", lambda: False)()))
    root.addHandler(console)

    json_file = logging.FileHandler(log_file, encoding="utf-8")
    json_file.setLevel(file_level)
    json_file.setFormatter(_JsonFormatter())
    root.addHandler(json_file)

    # Library chatter stays out of the reminder log.
    logging.getLogger("apscheduler").setLevel(logging.INFO)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_category_logger(category: str) -> logging.LoggerAdapter:
    """Return ``appointment_reminders.<category>`` wrapped to tag its records.

    Unknown categories raise ``ValueError``.
    """

    if category not in CATEGORIES:
        raise ValueError(f"Unsupported log category: {category!r}")
    return logging.LoggerAdapter(
        logging.getLogger(f"appointment_reminders.{category}"), {"category": category}
    )
