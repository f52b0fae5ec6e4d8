"""Structured JSON logging and run ID tagging."""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Any

run_id_var: ContextVar[str] = ContextVar("run_id", default="")

_EXTRA_FIELDS = ("current", "iterations", "max_mismatch", "total_power", "termination")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter with run ID injection."""

    def format(self, record: logging.LogRecord) -> str:
        import json

        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = run_id_var.get("")
        if rid:
            log_entry["run_id"] = rid

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Include extra fields
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry)


def new_run_id() -> str:
    """Tag all subsequent log records in this context with a fresh run ID."""
    rid = str(uuid.uuid4())[:8]
    run_id_var.set(rid)
    return rid


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure root logger. Use json_format=True for machine-readable output."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
