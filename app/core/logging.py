# app/core/logging.py
from __future__ import annotations

import logging
import sys
from typing import Any, Dict
from datetime import datetime, timezone

import structlog

from app.core.request_id import get_run_id


# -------- Processors ---------------------------------------------------------

_service_name = "feed-check"

def _add_ts(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    # ISO 8601 UTC timestamp, short & sortable
    event_dict.setdefault("ts", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
    return event_dict

def _add_level(_: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    # "warn" is an alias structlog keeps for stdlib compatibility
    level = event_dict.get("level") or method_name or "info"
    if level == "warn":
        level = "warning"
    event_dict["level"] = str(level).lower()
    return event_dict

def _add_service(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", _service_name)
    return event_dict

def _add_run_id(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    run = get_run_id()
    if run:
        event_dict.setdefault("run_id", run)
    return event_dict


# -------- Public API ---------------------------------------------------------

_logger: structlog.BoundLogger | None = None

def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO

def configure_logging(service_name: str = "feed-check", *, level: int | str = logging.INFO) -> None:
    """
    Configure one global structlog stack for the pipeline and the worker.
    """
    global _logger, _service_name

    _service_name = service_name
    numeric_level = _resolve_level(level)

    # stdlib → stderr, rendered as JSON by structlog
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    processors = [
        _add_ts,
        _add_level,
        _add_service,
        _add_run_id,
        structlog.processors.EventRenamer("event"),
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),  # stdout stays free for the summary
        cache_logger_on_first_use=True,
    )

    _logger = structlog.get_logger()

def get_logger() -> structlog.BoundLogger:
    global _logger
    if _logger is None:
        from app.config import settings

        configure_logging(level=settings.LOG_LEVEL)
    return _logger
