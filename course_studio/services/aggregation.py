"""Derived duration totals for chapters and courses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import AggregationWarning
from .duration import duration_seconds, format_duration, is_valid_duration
from .events import emit_aggregation_event
from .storage import ContentRepository

LOGGER = logging.getLogger(__name__)


@dataclass
class RecomputeSummary:
    chapters: int = 0
    courses: int = 0
    failures: int = 0


class DurationAggregator:
    """Recomputes parent durations from their children.

    Called explicitly at every mutation site, before the request completes. A
    failed recompute leaves the stored aggregate untouched, is logged, and
    returns ``None``; it never raises into the mutation that triggered it.
    """

    def __init__(self, repository: ContentRepository) -> None:
        self._repository = repository

    def recompute_chapter_duration(self, chapter_id: int) -> Optional[str]:
        try:
            videos = self._repository.list_referenced_videos(chapter_id)
            total = sum(self._seconds(video.duration, video_id=video.id) for video in videos)
            duration = format_duration(total, rollover=False)
            self._repository.set_chapter_duration(chapter_id, duration)
        except Exception as error:  # noqa: BLE001 - aggregates fail open
            self._report_failure("chapter", chapter_id, error)
            return None
        LOGGER.debug(
            "Chapter id=%s duration recomputed from %d video(s) -> %s",
            chapter_id,
            len(videos),
            duration,
        )
        return duration

    def recompute_course_duration(self, course_id: int) -> Optional[str]:
        try:
            chapters = self._repository.list_referenced_chapters(course_id)
            total = sum(
                self._seconds(chapter.duration, chapter_id=chapter.id) for chapter in chapters
            )
            duration = format_duration(total, rollover=True)
            self._repository.set_course_duration(course_id, duration)
        except Exception as error:  # noqa: BLE001 - aggregates fail open
            self._report_failure("course", course_id, error)
            return None
        LOGGER.debug(
            "Course id=%s total duration recomputed from %d chapter(s) -> %s",
            course_id,
            len(chapters),
            duration,
        )
        return duration

    def recompute_all(self) -> RecomputeSummary:
        """Rebuild every chapter total, then every course total."""

        summary = RecomputeSummary()
        for course in list(self._repository.iter_courses()):
            for chapter in list(self._repository.iter_chapters(course.id)):
                if self.recompute_chapter_duration(chapter.id) is None:
                    summary.failures += 1
                else:
                    summary.chapters += 1
            if self.recompute_course_duration(course.id) is None:
                summary.failures += 1
            else:
                summary.courses += 1
        LOGGER.info(
            "Recomputed %d chapter(s) and %d course(s) with %d failure(s)",
            summary.chapters,
            summary.courses,
            summary.failures,
        )
        return summary

    @staticmethod
    def _seconds(value: Optional[str], **context: int) -> int:
        if value and value.strip() and not is_valid_duration(value):
            emit_aggregation_event(
                "Ignoring unparsable duration",
                payload={"duration": value, **context},
            )
        return duration_seconds(value)

    @staticmethod
    def _report_failure(kind: str, entity_id: int, error: BaseException) -> None:
        warning = AggregationWarning(f"Could not recompute {kind} {entity_id} duration: {error}")
        LOGGER.warning("%s", warning, exc_info=error)
        emit_aggregation_event(
            "Recompute failed",
            payload={"kind": kind, "id": entity_id, "error": f"{error.__class__.__name__}: {error}"},
        )


__all__ = ["DurationAggregator", "RecomputeSummary"]
