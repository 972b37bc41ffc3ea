from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os


ROOT_LOGGER = "buildgo"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_configured = False


def configure(level: str | None = None, log_file: Path | None = None) -> None:
    """Set up the root handler once; later calls may still add a file handler."""
    global _configured
    if not _configured:
        level_name = (level or os.getenv("BUILDGO_LOG_LEVEL", "INFO")).upper()
        logging.basicConfig(
            level=getattr(logging, level_name, logging.INFO),
            format=LOG_FORMAT,
        )
        _configured = True
    elif level:
        logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    if log_file:
        _add_file_handler(logging.getLogger(ROOT_LOGGER), log_file)


def get_logger(name: str) -> logging.Logger:
    configure()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def fields(**kw) -> str:
    """Render structured fields as ``key=value`` pairs for a log message."""
    return " ".join(f"{k}={v}" for k, v in kw.items())


def _add_file_handler(logger: logging.Logger, log_file: Path) -> None:
    # Do not duplicate handlers if already set
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
