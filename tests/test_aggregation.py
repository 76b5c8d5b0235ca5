from __future__ import annotations

import logging

import pytest

from course_studio.services.aggregation import DurationAggregator
from course_studio.services.storage import ContentRepository


def _chapter_with_videos(repository: ContentRepository, course_id: int, durations, *, order: int = 1) -> int:
    chapter_id = repository.add_chapter(course_id, f"Chapter {order}", "d", order=order)
    repository.attach_chapter(course_id, chapter_id)
    for index, duration in enumerate(durations, start=1):
        video_id = repository.add_video(chapter_id, f"Video {index}", "d", "url", order=index, duration=duration)
        repository.attach_video(chapter_id, video_id)
    return chapter_id


def test_chapter_and_course_totals(repository: ContentRepository) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Food Safety", "d", created_by="u1")
    intro = _chapter_with_videos(repository, course_id, ["05:30", "10:00"], order=1)
    handling = _chapter_with_videos(repository, course_id, ["12:15", "10:30"], order=2)

    assert aggregator.recompute_chapter_duration(intro) == "15:30"
    assert aggregator.recompute_chapter_duration(handling) == "22:45"
    assert aggregator.recompute_course_duration(course_id) == "38:15"

    course = repository.get_course(course_id)
    assert course is not None and course.total_duration == "38:15"


def test_chapter_total_never_rolls_over_but_course_does(repository: ContentRepository) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Long", "d", created_by="u1")
    chapter_id = _chapter_with_videos(repository, course_id, ["45:00", "30:00"])

    assert aggregator.recompute_chapter_duration(chapter_id) == "75:00"
    assert aggregator.recompute_course_duration(course_id) == "1:15:00"


def test_only_referenced_videos_are_counted(repository: ContentRepository) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Course", "d", created_by="u1")
    chapter_id = _chapter_with_videos(repository, course_id, ["01:00"])
    repository.add_video(chapter_id, "Unlisted", "d", "url", order=9, duration="10:00")

    assert aggregator.recompute_chapter_duration(chapter_id) == "1:00"


def test_unparsable_video_duration_counts_as_zero(
    repository: ContentRepository, caplog: pytest.LogCaptureFixture
) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Course", "d", created_by="u1")
    chapter_id = _chapter_with_videos(repository, course_id, ["05:30", "soon"])

    with caplog.at_level(logging.WARNING):
        assert aggregator.recompute_chapter_duration(chapter_id) == "5:30"
    assert "soon" in caplog.text


def test_failed_recompute_keeps_previous_value(
    repository: ContentRepository, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Course", "d", created_by="u1")
    chapter_id = _chapter_with_videos(repository, course_id, ["05:30"])
    assert aggregator.recompute_chapter_duration(chapter_id) == "5:30"
    repository.add_video(chapter_id, "Extra", "d", "url", order=2, duration="10:00")

    def broken(_chapter_id: int):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(repository, "list_referenced_videos", broken)

    with caplog.at_level(logging.WARNING):
        assert aggregator.recompute_chapter_duration(chapter_id) is None

    chapter = repository.get_chapter(chapter_id)
    assert chapter is not None and chapter.duration == "5:30"
    assert "database is locked" in caplog.text


def test_recompute_all_rebuilds_every_aggregate(repository: ContentRepository) -> None:
    aggregator = DurationAggregator(repository)
    course_id = repository.add_course("Course", "d", created_by="u1")
    _chapter_with_videos(repository, course_id, ["05:30", "10:00"])
    empty_course = repository.add_course("Empty", "d", created_by="u2")

    summary = aggregator.recompute_all()

    assert summary.chapters == 1
    assert summary.courses == 2
    assert summary.failures == 0
    assert repository.get_course(course_id).total_duration == "15:30"
    assert repository.get_course(empty_course).total_duration == "0:00"
