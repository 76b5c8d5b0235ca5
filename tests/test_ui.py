from __future__ import annotations

from rich.console import Console

from course_studio.services.seeding import seed_demo_content
from course_studio.ui.console import ConsoleUI
from course_studio.ui.modern import ModernUI
from course_studio.ui.overview import collect_overview


def test_overview_snapshot_counts(manager) -> None:
    seed_demo_content(manager)

    snapshot = collect_overview(manager.repository)

    assert snapshot.course_count == 3
    assert snapshot.chapter_count == 3
    assert snapshot.video_count == 4
    assert snapshot.status_totals == {"draft": 1, "published": 2}


def test_console_ui_lists_durations(manager) -> None:
    seed_demo_content(manager)
    lines = []

    ConsoleUI(manager.repository, writer=lines.append).run()

    output = "\n".join(lines)
    assert "Course: Food Safety & Hygiene [published] 38:15" in output
    assert "  3. Personal Hygiene (0:00) - no videos" in output
    assert "1. Welcome to Food Safety Training (05:30, 0 views)" in output


def test_console_ui_handles_empty_catalogue(repository) -> None:
    lines = []

    ConsoleUI(repository, writer=lines.append).run()

    assert "(no courses)" in lines


def test_modern_ui_renders_tree(manager) -> None:
    seed_demo_content(manager)
    console = Console(record=True, width=160)

    ModernUI(manager.repository, console=console).run()

    output = console.export_text()
    assert "Course Studio Overview" in output
    assert "Food Safety & Hygiene" in output
    assert "38:15" in output
