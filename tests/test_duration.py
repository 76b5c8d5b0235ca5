from __future__ import annotations

import logging

import pytest

from course_studio.errors import AggregationWarning
from course_studio.services.duration import (
    duration_seconds,
    format_duration,
    is_valid_duration,
    parse_duration,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("05:30", 330),
        ("0:00", 0),
        ("75:00", 4500),
        ("1:02:03", 3723),
        (" 10:00 ", 600),
    ],
)
def test_parse_duration_accepts_minute_and_hour_forms(text: str, expected: int) -> None:
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "5", "1:2:3:4", "-1:00", "1:60", "1:60:00", "1:xx"])
def test_parse_duration_rejects_malformed_values(text: str) -> None:
    with pytest.raises(AggregationWarning):
        parse_duration(text)


def test_duration_seconds_counts_unparsable_as_zero(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert duration_seconds("not-a-duration") == 0
    assert "not-a-duration" in caplog.text
    assert duration_seconds(None) == 0
    assert duration_seconds("") == 0


def test_format_duration_rolls_over_to_hours() -> None:
    assert format_duration(0) == "0:00"
    assert format_duration(930) == "15:30"
    assert format_duration(2295) == "38:15"
    assert format_duration(3599) == "59:59"
    assert format_duration(3600) == "1:00:00"
    assert format_duration(3723) == "1:02:03"


def test_format_duration_without_rollover_keeps_minutes_unbounded() -> None:
    assert format_duration(4500, rollover=False) == "75:00"
    assert format_duration(0, rollover=False) == "0:00"
    assert format_duration(-5, rollover=False) == "0:00"


def test_is_valid_duration() -> None:
    assert is_valid_duration("12:15")
    assert not is_valid_duration("12:75")
    assert not is_valid_duration(None)
