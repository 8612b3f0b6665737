"""Structured local logging and crash hook setup.

Everything under the ``naspanel`` logger lands in a JSON-lines file under
``<config root>/logs``. Records from the display engine carry the panel they
concern (``profile``/``port``) and an ``event`` name; both formatters below
surface those fields.
"""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from naspanel_display import PANEL_FIELDS

from .config import config_root


_LOGGER_NAME = "naspanel"
_RECORD_FIELDS = PANEL_FIELDS + ("crash_id",)


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_level(debug: bool = False) -> int:
    """``--debug`` shows per-frame detail such as retries and checksum mismatches."""
    return logging.DEBUG if debug else logging.INFO


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for name in _RECORD_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        return json.dumps(payload, ensure_ascii=True, default=str)


class ConsoleFormatter(logging.Formatter):
    """``LEVEL [profile@port] message (event)`` for interactive runs."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [record.levelname]
        profile = getattr(record, "profile", None)
        if profile:
            port = getattr(record, "port", None)
            parts.append(f"[{profile}@{port}]" if port else f"[{profile}]")
        parts.append(record.getMessage())
        event = getattr(record, "event", None)
        if event:
            parts.append(f"({event})")
        text = " ".join(parts)
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def configure_logging(keep_files: int = 7, console: bool = True, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    # the level follows the latest call even when handlers are already set
    logger.setLevel(level)
    if logger.handlers:
        return logger

    path = log_dir() / "naspanel.log"
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(stream_handler)

    logger.info(
        "logging configured at %s",
        logging.getLevelName(level),
        extra={"event": "logging_configured"},
    )
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


def _install_fault_handler(logger: logging.Logger) -> None:
    fault_path = log_dir() / "fault.log"
    fh = fault_path.open("a", encoding="utf-8")
    faulthandler.enable(file=fh, all_threads=True)
    logger.info("fault handler enabled", extra={"event": "fault_handler_enabled"})


def install_crash_hooks() -> None:
    logger = get_logger()

    def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
        crash_id = str(uuid.uuid4())
        logger.critical(
            f"uncaught exception crash_id={crash_id}",
            exc_info=(exc_type, exc_value, exc_tb),
            extra={"event": "uncaught_exception", "crash_id": crash_id},
        )

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        crash_id = str(uuid.uuid4())
        logger.critical(
            f"thread exception in {args.thread.name if args.thread else '?'} crash_id={crash_id}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            extra={"event": "thread_exception", "crash_id": crash_id},
        )

    sys.excepthook = _log_uncaught
    threading.excepthook = _thread_hook
    _install_fault_handler(logger)
