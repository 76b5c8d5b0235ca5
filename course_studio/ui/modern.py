"""A Rich-powered overview of courses, chapters and videos."""

from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..services.storage import ChapterRecord, ContentRepository, CourseRecord, VideoRecord
from .overview import STATUS_LABELS, CourseOverview, OverviewSnapshot, collect_overview


class ModernUI:
    """Render the catalogue as a tree next to a summary panel."""

    def __init__(self, repository: ContentRepository, *, console: Optional[Console] = None) -> None:
        self._repository = repository
        self._console = console or Console()

    def run(self) -> None:
        snapshot = collect_overview(self._repository)
        console = self._console

        console.rule("[bold magenta]Course Studio Overview")

        if snapshot.course_count == 0:
            console.print(
                Panel(
                    "No courses have been created yet.\n"
                    "Use [bold]python run.py seed[/bold] to load the demo catalogue.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        tree_panel = Panel(
            self._build_tree(snapshot.courses),
            title="Catalogue",
            border_style="cyan",
            box=box.ROUNDED,
        )
        console.print(Columns([tree_panel, self._build_stats_panel(snapshot)], expand=True, equal=True))
        console.print()
        console.print(
            Text("Tip: pass --style console for plain output.", style="dim"),
            justify="center",
        )

    def _build_tree(self, courses: Iterable[CourseOverview]) -> Tree:
        tree = Tree("[bold cyan]Courses", guide_style="cyan")

        for course_overview in courses:
            course_node = tree.add(self._build_course_label(course_overview.record))
            if not course_overview.chapters:
                course_node.add("[dim]No chapters yet")
                continue

            for chapter_overview in course_overview.chapters:
                chapter_node = course_node.add(self._build_chapter_label(chapter_overview.record))
                if not chapter_overview.videos:
                    chapter_node.add("[dim]No videos yet")
                    continue
                for video in chapter_overview.videos:
                    chapter_node.add(self._build_video_label(video))

        return tree

    @staticmethod
    def _build_course_label(record: CourseRecord) -> Text:
        label = Text(record.name, style="bold")
        label.append(f"  {record.total_duration}", style="green")
        status_style = "bright_green" if record.status == "published" else "yellow"
        label.append(f"  {STATUS_LABELS.get(record.status, record.status)}", style=status_style)
        if record.description:
            label.append("\n")
            label.append(record.description, style="dim")
        return label

    @staticmethod
    def _build_chapter_label(record: ChapterRecord) -> Text:
        label = Text(f"{record.order}. {record.name}", style="bright_cyan")
        label.append(f"  {record.duration}", style="green")
        return label

    @staticmethod
    def _build_video_label(video: VideoRecord) -> Text:
        label = Text(f"{video.order}. {video.title}", style="white" if video.is_active else "dim")
        label.append(f"  {video.duration}", style="green")
        label.append(f"  {video.views} views", style="dim")
        if not video.is_active:
            label.append("  inactive", style="red")
        return label

    @staticmethod
    def _build_stats_panel(snapshot: OverviewSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Courses", str(snapshot.course_count))
        metrics.add_row("Chapters", str(snapshot.chapter_count))
        metrics.add_row("Videos", str(snapshot.video_count))
        metrics.add_row("Views", str(snapshot.total_views))

        status_table = Table.grid(expand=True, padding=(0, 1))
        status_table.add_column(style="dim")
        status_table.add_column(justify="right", style="bold")
        for key, label in STATUS_LABELS.items():
            status_table.add_row(label, str(snapshot.status_totals.get(key, 0)))

        body = Group(metrics, Rule(style="magenta"), status_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)


__all__ = ["ModernUI"]
