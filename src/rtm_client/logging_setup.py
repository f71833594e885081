# src/rtm_client/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep stderr usable next to command output:
    - rtm_client records pass (scheduler chatter only from WARNING)
    - httpx/httpcore, captured warnings and anything else only from ERROR
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "rtm_client" or name.startswith("rtm_client."):
            if name.startswith("rtm_client.scheduler"):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = Path.home() / ".local" / "rtm",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backups: int = 3,
) -> Path:
    """
    Route all logging to a filtered stderr handler and a rotating file (rtm.log).

    Every request the client signs is logged at DEBUG, so the file rotates.
    Call once from the CLI entrypoint; library users configure logging themselves.
    """
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "rtm.log"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    file_handler.setLevel(file_level)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in (console, file_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(min(console_level, file_level))

    # httpx logs every request line at INFO; ours are enough
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
