"""
Structured JSON logging configuration for the compliance engine

Provides trace ID correlation across one compliance analysis, a structured
JSON file format and a readable console format. Every pipeline transition is
emitted through log_event() so verdicts can be reconstructed from the log.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar


# One trace id per analysis request, visible throughout the async call stack
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per line for the log file.

    Keys: timestamp (UTC, ISO 8601), level, logger, trace_id, event, message,
    and when present component, details and exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "trace_id": trace_id_var.get(),
            "event": getattr(record, "event", "log"),
            "message": record.getMessage(),
        }
        for key in ("component", "details"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console format.

    Example: 2026-01-15 10:30:45 [INFO] decision_engine/state_transition #1f2e3d4c {'state': 'blocked'}
    """

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", None)
        if component is None:
            return super().format(record)

        trace_id = trace_id_var.get()
        head = f"{self.formatTime(record, self.datefmt)} [{record.levelname}] {component}/{record.getMessage()}"
        if trace_id:
            head += f" #{trace_id[:8]}"
        details = getattr(record, "details", None)
        return f"{head} {details}" if details else head


def setup_logging(log_file: Optional[str] = "logs/specguard.log", level: str = "INFO", json_logs: bool = True):
    """
    Configure logging for the application.

    Args:
        log_file: Path to log file, or None for console only
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, use JSON formatter for file; if False, use human-readable

    Returns:
        Configured root logger instance
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(getattr(logging, level.upper()))
        if json_logs:
            file_handler.setFormatter(StructuredJSONFormatter())
        else:
            file_handler.setFormatter(HumanReadableFormatter())
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    return logger


class TraceContext:
    """
    Context manager for trace ID propagation.

    Usage:
        with TraceContext() as trace_id:
            verdict = await engine.analyze_compliance(title, description)
    """

    def __init__(self, trace_id: Optional[str] = None):
        self.trace_id = trace_id or str(uuid.uuid4())
        self._token = None

    def __enter__(self):
        self._token = trace_id_var.set(self.trace_id)
        return self.trace_id

    def __exit__(self, *args):
        trace_id_var.reset(self._token)


def log_event(
    logger: logging.Logger,
    event: str,
    component: str = "system",
    details: Optional[Dict[str, Any]] = None,
    level: str = "INFO"
):
    """
    Log a structured event.

    Args:
        logger: Logger instance to use
        event: Event name (e.g., 'critical_check', 'analyzer_unavailable')
        component: Pipeline stage that emitted the event (e.g., 'detector', 'retrieval')
        details: Additional structured data to include in the log
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Example:
        log_event(logger, "critical_check", "detector", {
            "violations": 1,
            "blocking": ["PCI-DSS-BLOCK-001"],
        }, level="WARNING")
    """
    extra = {"event": event, "component": component}
    if details:
        extra["details"] = details

    log_level = getattr(logging, level.upper())
    logger.log(log_level, event, extra=extra)


def get_current_trace_id() -> Optional[str]:
    """Return the current trace ID, or None outside a TraceContext."""
    return trace_id_var.get()
