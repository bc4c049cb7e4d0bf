# src/cadence/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "cadence.log"

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Store adapters log every write; on the console only their problems matter.
_CHATTY_LOGGERS = frozenset({"cadence.tasks.task_store", "cadence.tasks.rest_store"})

# Third-party loggers that would otherwise follow the DEBUG root into the file.
_THIRD_PARTY_LEVELS = {"httpx": logging.WARNING, "httpcore": logging.WARNING}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console view of the log stream.

    cadence.* passes through (store adapters only from WARNING). Everything else,
    captured py.warnings included, needs ERROR to reach the terminal.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "cadence" or name.startswith("cadence."):
            if name in _CHATTY_LOGGERS:
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_ConsoleNoiseFilter())
    return handler


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/cadence",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all logging to stderr (filtered) and to <log_dir>/cadence.log (everything
    from file_level up). Replaces any handlers already on the root logger, so calling
    it again reconfigures rather than duplicates output.

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(min(console_level, file_level))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root.addHandler(_console_handler(console_level, formatter))
    root.addHandler(_file_handler(log_file, file_level, formatter))

    logging.captureWarnings(True)
    for name, level in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    return log_file
