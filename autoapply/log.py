"""Logging setup shared by the API server and the pipeline stages.

Every record carries the HTTP route being served (``POST /jobs/match``) or
``-`` when logged outside a request, so lines from concurrent requests can be
told apart in the console and in the rotating file under ``logs/``.
"""
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from flask import has_request_context, request

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  [%(route)s]  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_BACKUP_DAYS = 14
# HTTP client chatter stays at WARNING even when the app runs at DEBUG.
_QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai")
_configured = False


class RequestContextFilter(logging.Filter):
    """Stamp records with the route of the Flask request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.route = f"{request.method} {request.path}" if has_request_context() else "-"
        return True


def _log_dir() -> Path:
    return Path(os.environ.get("AUTOAPPLY_LOG_DIR") or Path(__file__).resolve().parent.parent / "logs")


def _file_logging_enabled() -> bool:
    return os.environ.get("AUTOAPPLY_LOG_FILE", "true").strip().lower() not in ("0", "false", "no", "off")


def configure_logging(level: str | None = None) -> None:
    """Set levels and install console/file handlers once.

    ``level`` overrides ``LOG_LEVEL``. Calling again only adjusts levels;
    handlers someone else already put on the root logger are left alone.
    """
    global _configured
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    _configured = True

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    context = RequestContextFilter()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric)
    console.setFormatter(formatter)
    console.addFilter(context)
    root.addHandler(console)

    if not _file_logging_enabled():
        return

    try:
        directory = _log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(
            directory / "autoapply.log", when="midnight", backupCount=_BACKUP_DAYS, encoding="utf-8",
        )
    except OSError as exc:
        logging.getLogger(__name__).warning("File logging disabled: %s", exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    fh.addFilter(context)
    root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures logging on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
