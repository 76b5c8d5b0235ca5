"""Per-parent display order for chapters and videos."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..errors import ValidationError
from .storage import ContentRepository

LOGGER = logging.getLogger(__name__)


def _next_after(current_max: Optional[int]) -> int:
    return 1 if current_max is None else current_max + 1


class OrderSequencer:
    """Hands out ``max + 1`` positions and applies explicit reorders.

    Positions are not repacked after deletions. Two concurrent inserts under
    the same parent can read the same maximum and receive the same order; that
    is tolerated since order only sequences display.
    """

    def __init__(self, repository: ContentRepository) -> None:
        self._repository = repository

    def next_chapter_order(self, course_id: int) -> int:
        order = _next_after(self._repository.max_chapter_order(course_id))
        LOGGER.debug("Next chapter order for course_id=%s -> %s", course_id, order)
        return order

    def next_video_order(self, chapter_id: int) -> int:
        order = _next_after(self._repository.max_video_order(chapter_id))
        LOGGER.debug("Next video order for chapter_id=%s -> %s", chapter_id, order)
        return order

    @staticmethod
    def _check_sequence(requested: Sequence[int], existing: Sequence[int], *, label: str) -> None:
        if len(requested) != len(set(requested)):
            raise ValidationError(f"Duplicate {label} identifier provided", field=f"{label}_ids")
        unknown = set(requested) - set(existing)
        if unknown:
            raise ValidationError(
                f"Unknown {label} identifier(s): {', '.join(str(item) for item in sorted(unknown))}",
                field=f"{label}_ids",
            )

    def renumber_chapters(self, course_id: int, chapter_ids: Sequence[int]) -> None:
        """Give the listed chapters orders 1..n in sequence.

        Chapters of the course that are left out keep their relative order and
        follow the listed ones.
        """

        existing = [chapter.id for chapter in self._repository.iter_chapters(course_id)]
        self._check_sequence(chapter_ids, existing, label="chapter")
        listed = set(chapter_ids)
        sequence = list(chapter_ids) + [item for item in existing if item not in listed]
        self._repository.reorder_chapters(course_id, sequence)

    def renumber_videos(self, chapter_id: int, video_ids: Sequence[int]) -> None:
        """Video counterpart of :meth:`renumber_chapters`."""

        existing = [video.id for video in self._repository.iter_videos(chapter_id)]
        self._check_sequence(video_ids, existing, label="video")
        listed = set(video_ids)
        sequence = list(video_ids) + [item for item in existing if item not in listed]
        self._repository.reorder_videos(chapter_id, sequence)


__all__ = ["OrderSequencer"]
