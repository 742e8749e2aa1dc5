# src/included/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "included.log"

# Background loops: one INFO line per tick would drown the operator prompt.
_POLLING_LOGGERS = (
    "included.notifications.notification_sweeper",
    "included.tasks.task_recovery",
)

# Transport libraries log every request at INFO; keep them to the file.
_CHATTY_LIBS = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """Console gets pipeline events; sweeper ticks only when something is wrong."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name in _POLLING_LOGGERS:
            return record.levelno >= logging.WARNING
        if record.name.startswith("included."):
            return True
        # Third-party loggers and captured warnings.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/included",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console (filtered) + <log_dir>/included.log (everything at file_level).

    Replaces existing root handlers, so calling it twice does not duplicate
    output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for lib in _CHATTY_LIBS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return log_file
