"""JSON logging to stdout plus a dedicated ingest audit file."""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "ragchat.ingest.audit"
AUDIT_LOG_FILE = "ingest_audit.log"

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class MinimalJSONFormatter(logging.Formatter):
    """One JSON object per record; dict messages are merged into the object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            text = record.getMessage()
            if text:
                payload["message"] = text

        # Telemetry events already carry a formatted traceback under "exc".
        if record.exc_info and "exc" not in payload:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(level: str, audit_path: Path) -> dict[str, Any]:
    """Return the ``dictConfig`` schema used by :func:`configure_logging`."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": MinimalJSONFormatter}},
        "handlers": {
            "stdout": {"class": "logging.StreamHandler", "formatter": "json"},
            "ingest_audit": {
                "class": "logging.FileHandler",
                "filename": str(audit_path),
                "mode": "a",
                "encoding": "utf-8",
                "formatter": "json",
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            AUDIT_LOGGER_NAME: {"level": "INFO", "handlers": ["ingest_audit"], "propagate": False},
            # httpx logs every request line at INFO.
            "httpx": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None, log_dir: str | Path | None = None) -> Path:
    """Install the logging configuration and return the audit log path.

    ``LOG_LEVEL`` and ``LOG_DIR`` from the environment apply when the
    arguments are omitted.
    """

    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    directory = Path(log_dir or os.getenv("LOG_DIR") or "logs")
    directory.mkdir(parents=True, exist_ok=True)
    audit_path = directory / AUDIT_LOG_FILE
    logging.config.dictConfig(build_logging_config(level, audit_path))
    return audit_path


__all__ = [
    "AUDIT_LOGGER_NAME",
    "AUDIT_LOG_FILE",
    "MinimalJSONFormatter",
    "build_logging_config",
    "configure_logging",
]
