"""Structured event helpers shared by the engine and the web layer."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_EVENT_LOGGER = logging.getLogger("course_studio.events")

DB_QUERY = "DB_QUERY"
CASCADE = "CASCADE"
AGGREGATION = "AGGREGATION"
ACCESS = "ACCESS"

_MAX_VALUE_LENGTH = 200


def sanitize_context_value(value: Any) -> Any:
    """Return a log-friendly representation for *value*."""

    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        sanitized: Dict[str, Any] = {}
        for key, item in value.items():
            if key is None:
                continue
            cleaned = sanitize_context_value(item)
            if cleaned is None or cleaned == "":
                continue
            sanitized[str(key)] = cleaned
        return sanitized
    if isinstance(value, (list, tuple, set)):
        joined = ", ".join(str(item) for item in value)
    else:
        joined = str(value)
    trimmed = joined.strip()
    if not trimmed:
        return None
    if len(trimmed) > _MAX_VALUE_LENGTH:
        return trimmed[:_MAX_VALUE_LENGTH] + "…"
    return trimmed


def normalize_context(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty entries and sanitise the rest."""

    if not values:
        return {}
    normalised: Dict[str, Any] = {}
    for key, raw_value in values.items():
        if not key:
            continue
        value = sanitize_context_value(raw_value)
        if value is None or value == "":
            continue
        normalised[str(key)] = value
    return normalised


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    correlation: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log ``message`` tagged with ``event_type`` and flattened key/value details.

    The same details are attached to the record under ``event_*`` attributes so
    handlers can inspect them without parsing the message.
    """

    base_message = str(message).strip()
    normalised_context = normalize_context(context)
    normalised_payload = normalize_context(payload)
    normalised_correlation = normalize_context(correlation)
    combined_details = {
        **normalised_correlation,
        **normalised_context,
        **normalised_payload,
    }
    details_text = ", ".join(f"{key}={value}" for key, value in combined_details.items())
    display_message = f"[{event_type}] {base_message}" if event_type else base_message
    log_message = f"{display_message} ({details_text})" if details_text else display_message
    extra: Dict[str, Any] = {
        "event_message": base_message,
        "event_type": event_type or "",
    }
    if normalised_context:
        extra["event_context"] = normalised_context
    if normalised_payload:
        extra["event_payload"] = normalised_payload
    if normalised_correlation:
        extra["event_correlation"] = normalised_correlation
    if duration_ms is not None:
        extra["event_duration_ms"] = float(duration_ms)
    logger.log(level, log_message, extra=extra)


def emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
    **kwargs: Any,
) -> None:
    """Emit a repository event; quiet by default since every query reports one."""

    emit_structured_event(
        DB_QUERY,
        action,
        payload=payload,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
        **kwargs,
    )


def emit_cascade_event(
    step: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
    **kwargs: Any,
) -> None:
    """Emit one step of a create/update/delete fan-out."""

    emit_structured_event(CASCADE, step, payload=payload, level=level, logger=logger, **kwargs)


def emit_aggregation_event(
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    level: int = logging.WARNING,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
    **kwargs: Any,
) -> None:
    """Report an aggregation problem. These never reach the caller."""

    emit_structured_event(AGGREGATION, message, payload=payload, level=level, logger=logger, **kwargs)


__all__ = [
    "ACCESS",
    "AGGREGATION",
    "CASCADE",
    "DB_QUERY",
    "DEFAULT_EVENT_LOGGER",
    "emit_aggregation_event",
    "emit_cascade_event",
    "emit_db_event",
    "emit_structured_event",
    "normalize_context",
    "sanitize_context_value",
]
