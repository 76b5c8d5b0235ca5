"""Parse and format ``M:SS`` / ``H:MM:SS`` duration strings."""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..errors import AggregationWarning

LOGGER = logging.getLogger(__name__)

DEFAULT_DURATION = "00:00"

_PART_PATTERN = re.compile(r"^\d+$")


def parse_duration(text: str) -> int:
    """Return the number of seconds represented by *text*.

    Accepts ``M:SS`` (minutes unbounded) and ``H:MM:SS``. Seconds, and the
    minutes of the three-part form, must be below 60. Raises
    :class:`AggregationWarning` for anything else.
    """

    if text is None:
        raise AggregationWarning("Duration is missing")
    parts = str(text).strip().split(":")
    if len(parts) not in (2, 3) or not all(_PART_PATTERN.match(part) for part in parts):
        raise AggregationWarning(f"Unparsable duration {text!r}")

    values = [int(part) for part in parts]
    if values[-1] >= 60:
        raise AggregationWarning(f"Seconds out of range in duration {text!r}")
    if len(values) == 3:
        hours, minutes, seconds = values
        if minutes >= 60:
            raise AggregationWarning(f"Minutes out of range in duration {text!r}")
        return hours * 3600 + minutes * 60 + seconds

    minutes, seconds = values
    return minutes * 60 + seconds


def duration_seconds(text: Optional[str]) -> int:
    """Best-effort variant of :func:`parse_duration`: failures count as zero."""

    if text is None or not str(text).strip():
        return 0
    try:
        return parse_duration(text)
    except AggregationWarning as warning:
        LOGGER.warning("Treating duration as 0:00: %s", warning)
        return 0


def format_duration(total_seconds: int, *, rollover: bool = True) -> str:
    """Render *total_seconds* as ``M:SS``, or ``H:MM:SS`` once an hour is reached.

    With ``rollover=False`` hours are never split out, so 75 minutes renders as
    ``75:00``.
    """

    total_seconds = max(0, int(total_seconds))
    seconds = total_seconds % 60
    if not rollover:
        return f"{total_seconds // 60}:{seconds:02d}"

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def is_valid_duration(text: Optional[str]) -> bool:
    if text is None:
        return False
    try:
        parse_duration(text)
    except AggregationWarning:
        return False
    return True


__all__ = [
    "DEFAULT_DURATION",
    "duration_seconds",
    "format_duration",
    "is_valid_duration",
    "parse_duration",
]
