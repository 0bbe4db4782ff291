# src/sm_manager/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER_PREFIX = "sm_manager."

# Per-entry save/delete lines are useful in the file, noise at the prompt.
_QUIET_APP_LOGGERS = ("sm_manager.store.",)

# HTTP client libraries behind the report model.
_CHATTY_LIBRARIES = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable:
    - app logs pass, except store internals below INFO
    - captured Python warnings and third-party logs only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith(APP_LOGGER_PREFIX):
            if name.startswith(_QUIET_APP_LOGGERS):
                return record.levelno >= logging.INFO
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/sm_manager",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_file_name: str = "sm_manager.log",
) -> Path:
    """
    Configure root logging once, before the store is opened.

    Console gets filtered output on stderr (stdout belongs to command replies);
    the file under log_dir gets everything at file_level. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name

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

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(fmt)
    root.addHandler(to_file)

    logging.captureWarnings(True)

    for lib in _CHATTY_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return log_file
