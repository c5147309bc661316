# transcript_crawler/logging_core/logger.py
"""
Centralized structured logging for the transcript pipeline.

Every record is emitted as one JSON line with:
- timestamp (ISO, UTC)
- level
- message
- run_id (bound by get_logger)
- stage_name, event_type, metadata (optional, filled by caller)

All pipeline code MUST log through get_logger() + log_event().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID


LOGGER_NAME = "transcript_crawler.pipeline"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if hasattr(record, "run_id"):
            log_record["run_id"] = str(record.run_id)

        for field in ("stage_name", "event_type", "metadata"):
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Binds run_id to every record without one logger object per run."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["run_id"] = self.extra["run_id"]
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """
    Install the JSON stdout handler on the pipeline logger (idempotent).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level if isinstance(level, int) else level.upper())
    logger.propagate = False

    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    return logger


def get_logger(run_id: UUID | str) -> RunLoggerAdapter:
    """Return a logger bound to the given pipeline run."""
    return RunLoggerAdapter(logging.getLogger(LOGGER_NAME), {"run_id": str(run_id)})


def log_event(
    logger: logging.Logger | logging.LoggerAdapter,
    level: int,
    message: str,
    *,
    stage_name: str | None = None,
    event_type: str,
    metadata: Dict[str, Any] | None = None,
) -> None:
    """
    Convenience wrapper for structured logging.

    Use this inside stages and subsystems for consistency.
    """
    extra: Dict[str, Any] = {"event_type": event_type}
    if stage_name:
        extra["stage_name"] = stage_name
    if metadata:
        extra["metadata"] = metadata

    logger.log(level, message, extra=extra)


# High-Level Intent
# One structured logging facility for the whole pipeline.
# Runs are concurrent, so the run id is bound per call through an adapter
# instead of caching one logger (and one handler) per run.

# Data Flow
# runner → get_logger(run_id) → passed into stages → log_event(...) → JSON line on stdout

# Edge Cases
# configure_logging() called twice → handler installed once.
# Never pass credentials in metadata.
