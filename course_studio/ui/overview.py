"""Snapshot of the stored catalogue shared by the terminal views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..services.storage import ChapterRecord, ContentRepository, CourseRecord, VideoRecord


STATUS_LABELS: Dict[str, str] = {
    "draft": "Draft",
    "published": "Published",
}


@dataclass
class ChapterOverview:
    record: ChapterRecord
    videos: List[VideoRecord]

    @property
    def inactive_count(self) -> int:
        return sum(1 for video in self.videos if not video.is_active)


@dataclass
class CourseOverview:
    record: CourseRecord
    chapters: List[ChapterOverview]


@dataclass
class OverviewSnapshot:
    courses: List[CourseOverview]
    course_count: int
    chapter_count: int
    video_count: int
    total_views: int
    status_totals: Dict[str, int] = field(default_factory=dict)


def collect_overview(repository: ContentRepository) -> OverviewSnapshot:
    """Walk every course, chapter and video once."""

    courses: List[CourseOverview] = []
    chapter_count = 0
    video_count = 0
    total_views = 0
    status_totals = {key: 0 for key in STATUS_LABELS}

    for course_record in repository.iter_courses():
        status_totals[course_record.status] = status_totals.get(course_record.status, 0) + 1
        chapters: List[ChapterOverview] = []
        for chapter_record in repository.iter_chapters(course_record.id):
            chapter_count += 1
            videos = list(repository.iter_videos(chapter_record.id))
            video_count += len(videos)
            total_views += sum(video.views for video in videos)
            chapters.append(ChapterOverview(record=chapter_record, videos=videos))
        courses.append(CourseOverview(record=course_record, chapters=chapters))

    return OverviewSnapshot(
        courses=courses,
        course_count=len(courses),
        chapter_count=chapter_count,
        video_count=video_count,
        total_views=total_views,
        status_totals=status_totals,
    )


__all__ = [
    "ChapterOverview",
    "CourseOverview",
    "OverviewSnapshot",
    "STATUS_LABELS",
    "collect_overview",
]
