"""Create, update and delete flows for courses, chapters and videos.

Each mutation authorizes the principal against the owning course's creator,
performs its repository writes, then recomputes the affected aggregates. None
of the steps share a transaction: a cascade is a sequence of independent
writes, and a failing descendant delete is logged and skipped rather than
rolled back.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..config import DEFAULT_PAGE_SIZE
from ..errors import ForbiddenError, NotFoundError, ValidationError
from .access import Principal, Role, require_access
from .aggregation import DurationAggregator
from .duration import DEFAULT_DURATION
from .events import emit_cascade_event
from .ordering import OrderSequencer
from .storage import (
    COURSE_STATUSES,
    ChapterRecord,
    ContentRepository,
    CourseRecord,
    VideoRecord,
)

LOGGER = logging.getLogger(__name__)


COURSE_NAME_MAX = 100
COURSE_DESCRIPTION_MAX = 1000
CHAPTER_NAME_MAX = 100
CHAPTER_DESCRIPTION_MAX = 500
VIDEO_TITLE_MAX = 100
VIDEO_DESCRIPTION_MAX = 500
URL_MAX = 2048
DURATION_MAX = 16


@dataclass
class ChapterDetail:
    chapter: ChapterRecord
    videos: List[VideoRecord]


@dataclass
class CourseDetail:
    course: CourseRecord
    chapters: List[ChapterDetail]


@dataclass
class CoursePage:
    items: List[CourseRecord]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class CascadeReport:
    """What a delete actually removed, and which steps failed along the way."""

    deleted_courses: List[int] = field(default_factory=list)
    deleted_chapters: List[int] = field(default_factory=list)
    deleted_videos: List[int] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


def _clean_required(value: Optional[str], *, field_name: str, label: str, limit: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} is required", field=field_name)
    if len(cleaned) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters", field=field_name)
    return cleaned


def _clean_update(value: Optional[str], *, field_name: str, label: str, limit: int) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{label} cannot be empty", field=field_name)
    if len(cleaned) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters", field=field_name)
    return cleaned


def _clean_optional(value: Optional[str], *, field_name: str, label: str, limit: int) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if len(cleaned) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters", field=field_name)
    return cleaned


def _unique(values: Iterable[int]) -> List[int]:
    seen: List[int] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class CourseLifecycleManager:
    """Entry point for every content mutation and authorized read."""

    def __init__(
        self,
        repository: ContentRepository,
        *,
        sequencer: Optional[OrderSequencer] = None,
        aggregator: Optional[DurationAggregator] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._repository = repository
        self._sequencer = sequencer or OrderSequencer(repository)
        self._aggregator = aggregator or DurationAggregator(repository)
        self._page_size = page_size

    @property
    def repository(self) -> ContentRepository:
        return self._repository

    @property
    def aggregator(self) -> DurationAggregator:
        return self._aggregator

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------
    def _load_course(self, principal: Principal, course_id: int) -> CourseRecord:
        course = self._repository.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        require_access(principal, course.created_by, resource=f"course:{course_id}")
        return course

    def _load_chapter(self, principal: Principal, chapter_id: int) -> ChapterRecord:
        chapter = self._repository.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        owner = self._repository.resolve_course_owner(chapter_id)
        require_access(principal, owner, resource=f"chapter:{chapter_id}")
        return chapter

    def _load_video(self, principal: Principal, video_id: int) -> VideoRecord:
        video = self._repository.get_video(video_id)
        if video is None:
            raise NotFoundError("Video not found")
        owner = self._repository.resolve_video_owner(video_id)
        require_access(principal, owner, resource=f"video:{video_id}")
        return video

    def _reload_course(self, course_id: int) -> CourseRecord:
        course = self._repository.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    def _reload_chapter(self, chapter_id: int) -> ChapterRecord:
        chapter = self._repository.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        return chapter

    def _reload_video(self, video_id: int) -> VideoRecord:
        video = self._repository.get_video(video_id)
        if video is None:
            raise NotFoundError("Video not found")
        return video

    def _chapter_detail(self, chapter: ChapterRecord) -> ChapterDetail:
        return ChapterDetail(chapter=chapter, videos=list(self._repository.iter_videos(chapter.id)))

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def list_courses(
        self,
        principal: Principal,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> CoursePage:
        """Admins see every course; everyone else only the ones they created."""

        if status is not None and status not in COURSE_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", field="status")
        limit = self._page_size if limit is None else int(limit)
        if limit < 1:
            raise ValidationError("Limit must be at least 1", field="limit")
        page = max(1, int(page))

        created_by = None if principal.is_admin else principal.id
        items = self._repository.list_courses(
            created_by=created_by,
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total = self._repository.count_courses(created_by=created_by, status=status)
        return CoursePage(items=items, page=page, limit=limit, total=total)

    def get_course(self, principal: Principal, course_id: int) -> CourseDetail:
        course = self._load_course(principal, course_id)
        chapters = [
            self._chapter_detail(chapter)
            for chapter in self._repository.iter_chapters(course_id)
        ]
        return CourseDetail(course=course, chapters=chapters)

    def create_course(
        self,
        principal: Principal,
        *,
        name: Optional[str],
        description: Optional[str],
        thumbnail: Optional[str] = None,
    ) -> CourseRecord:
        if principal.role is Role.STUDENT:
            raise ForbiddenError()
        name = _clean_required(name, field_name="name", label="Course name", limit=COURSE_NAME_MAX)
        description = _clean_required(
            description,
            field_name="description",
            label="Course description",
            limit=COURSE_DESCRIPTION_MAX,
        )
        thumbnail = _clean_optional(thumbnail, field_name="thumbnail", label="Thumbnail", limit=URL_MAX)

        course_id = self._repository.add_course(
            name,
            description,
            created_by=principal.id,
            thumbnail=thumbnail or "",
        )
        emit_cascade_event("Created course", payload={"course_id": course_id, "created_by": principal.id})
        return self._reload_course(course_id)

    def update_course(
        self,
        principal: Principal,
        course_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[str] = None,
    ) -> CourseRecord:
        self._load_course(principal, course_id)
        self._repository.update_course(
            course_id,
            name=_clean_update(name, field_name="name", label="Course name", limit=COURSE_NAME_MAX),
            description=_clean_update(
                description,
                field_name="description",
                label="Course description",
                limit=COURSE_DESCRIPTION_MAX,
            ),
            thumbnail=_clean_optional(thumbnail, field_name="thumbnail", label="Thumbnail", limit=URL_MAX),
        )
        return self._reload_course(course_id)

    def toggle_publish(self, principal: Principal, course_id: int) -> CourseRecord:
        course = self._load_course(principal, course_id)
        status = "published" if course.status == "draft" else "draft"
        self._repository.update_course(course_id, status=status)
        emit_cascade_event("Changed course status", payload={"course_id": course_id, "status": status})
        return self._reload_course(course_id)

    def delete_course(self, principal: Principal, course_id: int) -> CascadeReport:
        """Delete every chapter through the chapter cascade, then the course.

        The course row is kept, with its total recomputed, while any chapter
        survives the cascade.
        """

        course = self._load_course(principal, course_id)
        report = CascadeReport()
        chapter_ids = _unique(
            list(self._repository.chapter_ids_for_course(course_id))
            + [chapter.id for chapter in self._repository.iter_chapters(course_id)]
        )
        for chapter_id in chapter_ids:
            chapter = self._repository.get_chapter(chapter_id)
            if chapter is None:
                continue
            try:
                self._cascade_delete_chapter(chapter, report, recompute_course=False)
            except Exception as error:  # noqa: BLE001 - continue with remaining chapters
                LOGGER.exception("Failed to delete chapter %s of course %s", chapter_id, course_id)
                report.failures.append(f"chapter:{chapter_id}: {error}")

        surviving = [chapter.id for chapter in self._repository.iter_chapters(course_id)]
        if surviving:
            LOGGER.warning(
                "Keeping course %s: %d chapter(s) could not be deleted", course_id, len(surviving)
            )
            report.failures.append(f"course:{course_id}: {len(surviving)} chapter(s) remain")
            self._aggregator.recompute_course_duration(course_id)
            return report

        self._repository.remove_course(course.id)
        report.deleted_courses.append(course.id)
        emit_cascade_event(
            "Deleted course",
            payload={
                "course_id": course_id,
                "chapters": len(report.deleted_chapters),
                "videos": len(report.deleted_videos),
                "failures": len(report.failures),
            },
        )
        return report

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------
    def list_chapters(self, principal: Principal, course_id: int) -> List[ChapterDetail]:
        self._load_course(principal, course_id)
        return [self._chapter_detail(chapter) for chapter in self._repository.iter_chapters(course_id)]

    def get_chapter(self, principal: Principal, chapter_id: int) -> ChapterDetail:
        chapter = self._load_chapter(principal, chapter_id)
        return self._chapter_detail(chapter)

    def create_chapter(
        self,
        principal: Principal,
        course_id: int,
        *,
        name: Optional[str],
        description: Optional[str],
    ) -> ChapterRecord:
        name = _clean_required(name, field_name="name", label="Chapter name", limit=CHAPTER_NAME_MAX)
        description = _clean_required(
            description,
            field_name="description",
            label="Chapter description",
            limit=CHAPTER_DESCRIPTION_MAX,
        )
        self._load_course(principal, course_id)

        order = self._sequencer.next_chapter_order(course_id)
        chapter_id = self._repository.add_chapter(course_id, name, description, order=order)
        self._repository.attach_chapter(course_id, chapter_id)
        # The course total is left alone until the chapter gains a video.
        self._aggregator.recompute_chapter_duration(chapter_id)
        emit_cascade_event(
            "Created chapter",
            payload={"chapter_id": chapter_id, "course_id": course_id, "order": order},
        )
        return self._reload_chapter(chapter_id)

    def update_chapter(
        self,
        principal: Principal,
        chapter_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChapterRecord:
        self._load_chapter(principal, chapter_id)
        self._repository.update_chapter(
            chapter_id,
            name=_clean_update(name, field_name="name", label="Chapter name", limit=CHAPTER_NAME_MAX),
            description=_clean_update(
                description,
                field_name="description",
                label="Chapter description",
                limit=CHAPTER_DESCRIPTION_MAX,
            ),
        )
        return self._reload_chapter(chapter_id)

    def delete_chapter(self, principal: Principal, chapter_id: int) -> CascadeReport:
        chapter = self._load_chapter(principal, chapter_id)
        report = CascadeReport()
        self._cascade_delete_chapter(chapter, report, recompute_course=True)
        return report

    def reorder_chapters(
        self, principal: Principal, course_id: int, chapter_ids: Sequence[int]
    ) -> List[ChapterRecord]:
        self._load_course(principal, course_id)
        self._sequencer.renumber_chapters(course_id, chapter_ids)
        return list(self._repository.iter_chapters(course_id))

    def _cascade_delete_chapter(
        self,
        chapter: ChapterRecord,
        report: CascadeReport,
        *,
        recompute_course: bool,
    ) -> None:
        """Videos first, then the chapter row together with its course reference.

        A chapter that still holds a surviving video cannot be removed; it is
        left attached to its course with its duration recomputed, and the
        failure is recorded in *report*.
        """

        video_ids = _unique(
            list(self._repository.video_ids_for_chapter(chapter.id))
            + [video.id for video in self._repository.iter_videos(chapter.id)]
        )
        surviving_videos = 0
        for video_id in video_ids:
            try:
                self._remove_video(chapter.id, video_id)
            except Exception as error:  # noqa: BLE001 - continue with remaining videos
                LOGGER.exception("Failed to delete video %s of chapter %s", video_id, chapter.id)
                report.failures.append(f"video:{video_id}: {error}")
                surviving_videos += 1
            else:
                report.deleted_videos.append(video_id)

        try:
            # Removing the row drops its course_chapters entry in the same statement.
            self._repository.remove_chapter(chapter.id)
            self._repository.detach_chapter(chapter.course_id, chapter.id)
        except Exception as error:  # noqa: BLE001 - chapter stays attached to its course
            LOGGER.exception(
                "Failed to delete chapter %s (%d video(s) left)", chapter.id, surviving_videos
            )
            report.failures.append(f"chapter:{chapter.id}: {error}")
            self._aggregator.recompute_chapter_duration(chapter.id)
        else:
            report.deleted_chapters.append(chapter.id)
            emit_cascade_event(
                "Deleted chapter",
                payload={
                    "chapter_id": chapter.id,
                    "course_id": chapter.course_id,
                    "videos": len(video_ids) - surviving_videos,
                },
            )
        finally:
            if recompute_course:
                self._aggregator.recompute_course_duration(chapter.course_id)

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------
    def list_videos(self, principal: Principal, chapter_id: int) -> List[VideoRecord]:
        """Active videos of the chapter, by order."""

        self._load_chapter(principal, chapter_id)
        return list(self._repository.iter_videos(chapter_id, active_only=True))

    def get_video(self, principal: Principal, video_id: int) -> VideoRecord:
        return self._load_video(principal, video_id)

    def create_video(
        self,
        principal: Principal,
        chapter_id: int,
        *,
        title: Optional[str],
        description: Optional[str],
        video_url: Optional[str],
        thumbnail: Optional[str] = None,
        duration: Optional[str] = None,
    ) -> VideoRecord:
        title = _clean_required(title, field_name="title", label="Video title", limit=VIDEO_TITLE_MAX)
        description = _clean_required(
            description,
            field_name="description",
            label="Video description",
            limit=VIDEO_DESCRIPTION_MAX,
        )
        video_url = _clean_required(video_url, field_name="video_url", label="Video URL", limit=URL_MAX)
        thumbnail = _clean_optional(thumbnail, field_name="thumbnail", label="Thumbnail", limit=URL_MAX)
        duration = _clean_optional(duration, field_name="duration", label="Duration", limit=DURATION_MAX)
        chapter = self._load_chapter(principal, chapter_id)

        order = self._sequencer.next_video_order(chapter_id)
        video_id = self._repository.add_video(
            chapter_id,
            title,
            description,
            video_url,
            order=order,
            thumbnail=thumbnail or "",
            duration=duration or DEFAULT_DURATION,
        )
        self._repository.attach_video(chapter_id, video_id)
        self._aggregator.recompute_chapter_duration(chapter_id)
        self._aggregator.recompute_course_duration(chapter.course_id)
        emit_cascade_event(
            "Created video",
            payload={"video_id": video_id, "chapter_id": chapter_id, "order": order},
        )
        return self._reload_video(video_id)

    def update_video(
        self,
        principal: Principal,
        video_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        video_url: Optional[str] = None,
        thumbnail: Optional[str] = None,
        duration: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> VideoRecord:
        """Apply the given fields; a changed duration refreshes both ancestors."""

        video = self._load_video(principal, video_id)
        duration = _clean_update(duration, field_name="duration", label="Duration", limit=DURATION_MAX)
        self._repository.update_video(
            video_id,
            title=_clean_update(title, field_name="title", label="Video title", limit=VIDEO_TITLE_MAX),
            description=_clean_update(
                description,
                field_name="description",
                label="Video description",
                limit=VIDEO_DESCRIPTION_MAX,
            ),
            video_url=_clean_update(video_url, field_name="video_url", label="Video URL", limit=URL_MAX),
            thumbnail=_clean_optional(thumbnail, field_name="thumbnail", label="Thumbnail", limit=URL_MAX),
            duration=duration,
            is_active=is_active,
        )
        if duration is not None and duration != video.duration:
            self._recompute_ancestors(video.chapter_id)
        return self._reload_video(video_id)

    def delete_video(self, principal: Principal, video_id: int) -> CascadeReport:
        video = self._load_video(principal, video_id)
        report = CascadeReport()
        self._remove_video(video.chapter_id, video.id)
        report.deleted_videos.append(video.id)
        emit_cascade_event("Deleted video", payload={"video_id": video_id, "chapter_id": video.chapter_id})
        self._recompute_ancestors(video.chapter_id)
        return report

    def reorder_videos(
        self, principal: Principal, chapter_id: int, video_ids: Sequence[int]
    ) -> List[VideoRecord]:
        self._load_chapter(principal, chapter_id)
        self._sequencer.renumber_videos(chapter_id, video_ids)
        return list(self._repository.iter_videos(chapter_id))

    def record_view(self, principal: Principal, video_id: int) -> VideoRecord:
        self._load_video(principal, video_id)
        self._repository.increment_video_views(video_id)
        return self._reload_video(video_id)

    def _remove_video(self, chapter_id: int, video_id: int) -> None:
        # Deleting the row drops its chapter_videos entry with it, so a failed
        # delete leaves the video both stored and listed.
        self._repository.remove_video(video_id)
        self._repository.detach_video(chapter_id, video_id)

    def _recompute_ancestors(self, chapter_id: int) -> None:
        self._aggregator.recompute_chapter_duration(chapter_id)
        chapter = self._repository.get_chapter(chapter_id)
        if chapter is None:
            LOGGER.warning("Chapter %s vanished before its course total could be refreshed", chapter_id)
            return
        self._aggregator.recompute_course_duration(chapter.course_id)


__all__ = [
    "CascadeReport",
    "ChapterDetail",
    "CourseDetail",
    "CourseLifecycleManager",
    "CoursePage",
]
