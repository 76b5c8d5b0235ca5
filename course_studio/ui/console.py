"""Plain-text overview for terminals without rich rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from ..services.storage import ContentRepository, VideoRecord
from .overview import CourseOverview, collect_overview


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI that prints the course hierarchy with durations."""

    def __init__(self, repository: ContentRepository, *, writer: Callable[[str], None] = print) -> None:
        self._repository = repository
        self._write = writer

    def run(self) -> None:
        self._write("Course Studio - Console Overview")
        self._write("=" * 40)
        snapshot = collect_overview(self._repository)
        if not snapshot.courses:
            self._write("(no courses)")
            return
        for section in self._build_sections(snapshot.courses):
            self._write(section.title)
            self._write("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                self._write(entry)
            if not has_entries:
                self._write("(empty)")
            self._write("")

    @staticmethod
    def _build_sections(courses: Iterable[CourseOverview]) -> Iterable[ConsoleSection]:
        for overview in courses:
            record = overview.record
            yield ConsoleSection(
                title=f"Course: {record.name} [{record.status}] {record.total_duration}",
                entries=ConsoleUI._format_chapters(overview),
            )

    @staticmethod
    def _format_chapters(overview: CourseOverview) -> Iterable[str]:
        for chapter in overview.chapters:
            header = f"  {chapter.record.order}. {chapter.record.name} ({chapter.record.duration})"
            if not chapter.videos:
                yield f"{header} - no videos"
                continue
            yield header
            for video in chapter.videos:
                yield "    " + ConsoleUI._format_video(video)

    @staticmethod
    def _format_video(video: VideoRecord) -> str:
        line = f"{video.order}. {video.title} ({video.duration}, {video.views} views)"
        if not video.is_active:
            line += " [inactive]"
        return line


__all__ = ["ConsoleUI"]
