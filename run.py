"""Entry-point for the Course Studio application."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import uvicorn
import typer

from course_studio.bootstrap import initialize_app
from course_studio.logging_utils import build_default_handlers, configure_logging
from course_studio.services.aggregation import DurationAggregator
from course_studio.services.lifecycle import CourseLifecycleManager
from course_studio.services.seeding import seed_demo_content
from course_studio.services.storage import ContentRepository
from course_studio.ui.console import ConsoleUI
from course_studio.ui.modern import ModernUI
from course_studio.web import create_app


LOGGER = logging.getLogger("course_studio.cli")


cli = typer.Typer(add_completion=False, help="Course Studio management commands")


def _prepare_logging(storage_root: Path) -> None:
    configure_logging(handlers=build_default_handlers(storage_root))


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the overview presentation style.",
    show_default=True,
)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None)


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="COURSE_STUDIO_ROOT_PATH",
    ),
) -> None:
    """Run the JSON API with uvicorn."""

    app_config = initialize_app()
    _prepare_logging(app_config.storage_root)

    repository = ContentRepository(app_config)
    normalized_root = _normalize_root_path(root_path)
    app = create_app(repository, config=app_config, root_path=normalized_root)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server
    LOGGER.info("Serving Course Studio on http://%s:%s%s", host, port, normalized_root or "/")
    server.run()


@cli.command()
def overview(style: UIStyle = style_option) -> None:
    """Render the stored courses using the chosen UI style."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    repository = ContentRepository(config)
    if style is UIStyle.MODERN:
        ui = ModernUI(repository)
    else:
        ui = ConsoleUI(repository)
    ui.run()


@cli.command()
def seed(
    reset: bool = typer.Option(
        True,
        "--reset/--keep",
        help="Delete existing courses before loading the demo catalogue.",
    ),
) -> None:
    """Load the demo catalogue."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    manager = CourseLifecycleManager(ContentRepository(config), page_size=config.page_size)
    result = seed_demo_content(manager, reset=reset)

    if result.removed_courses:
        typer.echo(f"Removed {result.removed_courses} existing course(s).")
    typer.echo(
        f"Seeded {len(result.course_ids)} course(s), {len(result.chapter_ids)} chapter(s) "
        f"and {len(result.video_ids)} video(s)."
    )


@cli.command()
def recompute() -> None:
    """Rebuild every chapter and course duration from the stored videos."""

    config = initialize_app()
    _prepare_logging(config.storage_root)

    summary = DurationAggregator(ContentRepository(config)).recompute_all()
    typer.echo(
        f"Recomputed {summary.chapters} chapter(s) and {summary.courses} course(s)."
    )
    if summary.failures:
        typer.echo(f"{summary.failures} recompute(s) failed; see the log for details.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
