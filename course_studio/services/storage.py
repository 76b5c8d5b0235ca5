"""Persistence helpers backed by SQLite."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..config import AppConfig
from .duration import DEFAULT_DURATION


COURSE_STATUSES = ("draft", "published")


@dataclass
class CourseRecord:
    id: int
    name: str
    description: str
    thumbnail: str
    status: str
    created_by: str
    total_duration: str
    created_at: str
    updated_at: str


@dataclass
class ChapterRecord:
    id: int
    course_id: int
    name: str
    description: str
    duration: str
    order: int
    created_at: str
    updated_at: str


@dataclass
class VideoRecord:
    id: int
    chapter_id: int
    title: str
    description: str
    video_url: str
    thumbnail: str
    duration: str
    order: int
    views: int
    is_active: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "VideoRecord":
        values = dict(row)
        values["is_active"] = bool(values["is_active"])
        return cls(**values)


_COURSE_COLUMNS = (
    "id",
    "name",
    "description",
    "thumbnail",
    "status",
    "created_by",
    "total_duration",
    "created_at",
    "updated_at",
)
_CHAPTER_COLUMNS = (
    "id",
    "course_id",
    "name",
    "description",
    "duration",
    'position AS "order"',
    "created_at",
    "updated_at",
)
_VIDEO_COLUMNS = (
    "id",
    "chapter_id",
    "title",
    "description",
    "video_url",
    "thumbnail",
    "duration",
    'position AS "order"',
    "views",
    "is_active",
    "created_at",
    "updated_at",
)


def _select(columns: Sequence[str], table: str, alias: Optional[str] = None) -> str:
    prefix = f"{alias}." if alias else ""
    return f"SELECT {', '.join(prefix + column for column in columns)} FROM {table}" + (
        f" {alias}" if alias else ""
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


_MISSING = object()


LOGGER = logging.getLogger(__name__)


class ContentRepository:
    """Owns persistence of courses, chapters, videos and their reference lists.

    Every public method opens its own connection and commits on return, so a
    multi-step cascade issued by a caller is a sequence of independent writes.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
    ) -> None:
        self._db_path = config.database_file
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting debug events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any):
        """Emit a structured event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        error: BaseException | None = None
        try:
            yield event_payload
        except Exception as exc:
            error = exc
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            if error is None:
                event_payload.setdefault("status", "ok")
            filtered = {
                key: value for key, value in event_payload.items() if value is not None
            }
            self._event_emitter(action, payload=filtered, duration_ms=duration_ms)

    @staticmethod
    def _summarize_sql(statement: str) -> str:
        collapsed = " ".join(statement.strip().split())
        return collapsed[:180] + ("…" if len(collapsed) > 180 else "")

    def _execute(
        self,
        connection: sqlite3.Connection,
        statement: str,
        parameters: Sequence[Any] | None = None,
        *,
        action: str,
    ) -> sqlite3.Cursor:
        params: Tuple[Any, ...] = tuple(parameters) if parameters is not None else ()
        with self._track_db_event(
            action,
            sql=self._summarize_sql(statement),
            parameter_count=len(params),
        ) as event:
            cursor = connection.execute(statement, params)
            if cursor.rowcount is not None and cursor.rowcount >= 0:
                event.setdefault("rowcount", int(cursor.rowcount))
            return cursor

    def _connect(self) -> sqlite3.Connection:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    @contextlib.contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    def _fetch_one(
        self, statement: str, parameters: Sequence[Any] | None = None, *, action: str
    ) -> Optional[sqlite3.Row]:
        with self._session() as connection:
            return self._execute(connection, statement, parameters, action=action).fetchone()

    def _fetch_all(
        self, statement: str, parameters: Sequence[Any] | None = None, *, action: str
    ) -> List[sqlite3.Row]:
        with self._session() as connection:
            return self._execute(connection, statement, parameters, action=action).fetchall()

    def _write(self, statement: str, parameters: Sequence[Any], *, action: str) -> sqlite3.Cursor:
        with self._session() as connection:
            return self._execute(connection, statement, parameters, action=action)

    def _scalar(self, statement: str, parameters: Sequence[Any], *, action: str) -> Any:
        row = self._fetch_one(statement, parameters, action=action)
        return row[0] if row is not None else None

    @staticmethod
    def _assignments(values: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
        assignments: List[str] = []
        params: List[Any] = []
        for column, value in values.items():
            if value is _MISSING:
                continue
            assignments.append(f"{column} = ?")
            params.append(value)
        return assignments, params

    def _update_row(self, table: str, row_id: int, values: Dict[str, Any], *, action: str) -> bool:
        assignments, params = self._assignments(values)
        if not assignments:
            LOGGER.debug("No changes requested for %s id=%s", table, row_id)
            return False
        assignments.append("updated_at = ?")
        params.extend([_now(), row_id])
        cursor = self._write(
            f"UPDATE {table} SET {', '.join(assignments)} WHERE id = ?",
            params,
            action=action,
        )
        LOGGER.debug("Updated %s id=%s (%s)", table, row_id, ", ".join(assignments))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def add_course(
        self,
        name: str,
        description: str,
        *,
        created_by: str,
        thumbnail: str = "",
        status: str = "draft",
    ) -> int:
        LOGGER.debug("Adding course '%s' for creator=%s", name, created_by)
        timestamp = _now()
        cursor = self._write(
            """
            INSERT INTO courses(
                name, description, thumbnail, status, created_by,
                total_duration, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (name, description, thumbnail, status, created_by, DEFAULT_DURATION, timestamp, timestamp),
            action="courses.insert",
        )
        LOGGER.debug("Course '%s' inserted with id=%s", name, cursor.lastrowid)
        return int(cursor.lastrowid)

    def get_course(self, course_id: int) -> Optional[CourseRecord]:
        row = self._fetch_one(
            _select(_COURSE_COLUMNS, "courses") + " WHERE id = ?",
            (course_id,),
            action="courses.get",
        )
        if row is None:
            LOGGER.debug("Course id=%s not found", course_id)
            return None
        return CourseRecord(**row)

    @staticmethod
    def _course_filters(
        created_by: Optional[str], status: Optional[str]
    ) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if created_by is not None:
            clauses.append("created_by = ?")
            params.append(created_by)
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def list_courses(
        self,
        *,
        created_by: Optional[str] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[CourseRecord]:
        """Newest first, optionally filtered by creator and status."""

        where, params = self._course_filters(created_by, status)
        clauses = " ORDER BY created_at DESC, id DESC"
        if limit is not None and limit >= 0:
            clauses += " LIMIT ? OFFSET ?"
            params.extend([int(limit), int(offset)])
        rows = self._fetch_all(
            _select(_COURSE_COLUMNS, "courses") + where + clauses,
            params,
            action="courses.list",
        )
        return [CourseRecord(**row) for row in rows]

    def count_courses(self, *, created_by: Optional[str] = None, status: Optional[str] = None) -> int:
        where, params = self._course_filters(created_by, status)
        return int(self._scalar(f"SELECT COUNT(*) FROM courses{where}", params, action="courses.count") or 0)

    def iter_courses(self) -> Iterable[CourseRecord]:
        LOGGER.debug("Iterating over all courses")
        for row in self._fetch_all(
            _select(_COURSE_COLUMNS, "courses") + " ORDER BY id", action="courses.iter"
        ):
            yield CourseRecord(**row)

    def update_course(
        self,
        course_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[str] = None,
        status: Optional[str] = None,
    ) -> bool:
        return self._update_row(
            "courses",
            course_id,
            {
                "name": _MISSING if name is None else name,
                "description": _MISSING if description is None else description,
                "thumbnail": _MISSING if thumbnail is None else thumbnail,
                "status": _MISSING if status is None else status,
            },
            action="courses.update",
        )

    def set_course_duration(self, course_id: int, total_duration: str) -> None:
        self._write(
            "UPDATE courses SET total_duration = ? WHERE id = ?",
            (total_duration, course_id),
            action="courses.set_duration",
        )
        LOGGER.debug("Course id=%s total duration set to %s", course_id, total_duration)

    def remove_course(self, course_id: int) -> None:
        LOGGER.debug("Removing course id=%s", course_id)
        self._write("DELETE FROM courses WHERE id = ?", (course_id,), action="courses.delete")

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------
    def add_chapter(self, course_id: int, name: str, description: str, *, order: int) -> int:
        LOGGER.debug("Adding chapter '%s' to course_id=%s at order=%s", name, course_id, order)
        timestamp = _now()
        cursor = self._write(
            """
            INSERT INTO chapters(course_id, name, description, duration, position, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (course_id, name, description, DEFAULT_DURATION, order, timestamp, timestamp),
            action="chapters.insert",
        )
        return int(cursor.lastrowid)

    def get_chapter(self, chapter_id: int) -> Optional[ChapterRecord]:
        row = self._fetch_one(
            _select(_CHAPTER_COLUMNS, "chapters") + " WHERE id = ?",
            (chapter_id,),
            action="chapters.get",
        )
        if row is None:
            LOGGER.debug("Chapter id=%s not found", chapter_id)
            return None
        return ChapterRecord(**row)

    def iter_chapters(self, course_id: int) -> Iterable[ChapterRecord]:
        """Chapters whose back-reference points at *course_id*, by order."""

        for row in self._fetch_all(
            _select(_CHAPTER_COLUMNS, "chapters") + " WHERE course_id = ? ORDER BY position, id",
            (course_id,),
            action="chapters.iter",
        ):
            yield ChapterRecord(**row)

    def list_referenced_chapters(self, course_id: int) -> List[ChapterRecord]:
        """Chapters present in the course's reference list."""

        rows = self._fetch_all(
            _select(_CHAPTER_COLUMNS, "chapters", "c")
            + " JOIN course_chapters cc ON cc.chapter_id = c.id"
            + " WHERE cc.course_id = ? ORDER BY cc.slot",
            (course_id,),
            action="chapters.referenced",
        )
        return [ChapterRecord(**row) for row in rows]

    def chapter_ids_for_course(self, course_id: int) -> List[int]:
        rows = self._fetch_all(
            "SELECT chapter_id FROM course_chapters WHERE course_id = ? ORDER BY slot",
            (course_id,),
            action="course_chapters.list",
        )
        return [int(row[0]) for row in rows]

    def max_chapter_order(self, course_id: int) -> Optional[int]:
        value = self._scalar(
            "SELECT MAX(position) FROM chapters WHERE course_id = ?",
            (course_id,),
            action="chapters.max_order",
        )
        return int(value) if value is not None else None

    def attach_chapter(self, course_id: int, chapter_id: int) -> None:
        """Append *chapter_id* to the end of the course's reference list."""

        self._write(
            """
            INSERT OR IGNORE INTO course_chapters(course_id, chapter_id, slot)
            VALUES (?, ?, (SELECT COALESCE(MAX(slot), 0) + 1 FROM course_chapters WHERE course_id = ?))
            """,
            (course_id, chapter_id, course_id),
            action="course_chapters.attach",
        )
        LOGGER.debug("Chapter id=%s attached to course_id=%s", chapter_id, course_id)

    def detach_chapter(self, course_id: int, chapter_id: int) -> None:
        self._write(
            "DELETE FROM course_chapters WHERE course_id = ? AND chapter_id = ?",
            (course_id, chapter_id),
            action="course_chapters.detach",
        )
        LOGGER.debug("Chapter id=%s detached from course_id=%s", chapter_id, course_id)

    def update_chapter(
        self,
        chapter_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        return self._update_row(
            "chapters",
            chapter_id,
            {
                "name": _MISSING if name is None else name,
                "description": _MISSING if description is None else description,
            },
            action="chapters.update",
        )

    def set_chapter_duration(self, chapter_id: int, duration: str) -> None:
        self._write(
            "UPDATE chapters SET duration = ? WHERE id = ?",
            (duration, chapter_id),
            action="chapters.set_duration",
        )
        LOGGER.debug("Chapter id=%s duration set to %s", chapter_id, duration)

    def remove_chapter(self, chapter_id: int) -> None:
        LOGGER.debug("Removing chapter id=%s", chapter_id)
        self._write("DELETE FROM chapters WHERE id = ?", (chapter_id,), action="chapters.delete")

    def reorder_chapters(self, course_id: int, chapter_ids: Sequence[int]) -> None:
        """Assign orders 1..n and rewrite the reference list in the same sequence."""

        with self._session() as connection:
            for index, chapter_id in enumerate(chapter_ids, start=1):
                self._execute(
                    connection,
                    "UPDATE chapters SET position = ? WHERE id = ? AND course_id = ?",
                    (index, chapter_id, course_id),
                    action="chapters.reorder",
                )
                self._execute(
                    connection,
                    "UPDATE course_chapters SET slot = ? WHERE course_id = ? AND chapter_id = ?",
                    (index, course_id, chapter_id),
                    action="course_chapters.reorder",
                )
        LOGGER.debug("Reordered %d chapters for course_id=%s", len(chapter_ids), course_id)

    def resolve_course_owner(self, chapter_id: int) -> Optional[str]:
        """Creator of the course that owns *chapter_id*."""

        return self._scalar(
            """
            SELECT courses.created_by FROM chapters
            JOIN courses ON courses.id = chapters.course_id
            WHERE chapters.id = ?
            """,
            (chapter_id,),
            action="chapters.resolve_owner",
        )

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------
    def add_video(
        self,
        chapter_id: int,
        title: str,
        description: str,
        video_url: str,
        *,
        order: int,
        thumbnail: str = "",
        duration: str = DEFAULT_DURATION,
        is_active: bool = True,
    ) -> int:
        LOGGER.debug("Adding video '%s' to chapter_id=%s at order=%s", title, chapter_id, order)
        timestamp = _now()
        cursor = self._write(
            """
            INSERT INTO videos(
                chapter_id, title, description, video_url, thumbnail, duration,
                position, views, is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?)
            """,
            (
                chapter_id,
                title,
                description,
                video_url,
                thumbnail,
                duration,
                order,
                int(is_active),
                timestamp,
                timestamp,
            ),
            action="videos.insert",
        )
        return int(cursor.lastrowid)

    def get_video(self, video_id: int) -> Optional[VideoRecord]:
        row = self._fetch_one(
            _select(_VIDEO_COLUMNS, "videos") + " WHERE id = ?",
            (video_id,),
            action="videos.get",
        )
        if row is None:
            LOGGER.debug("Video id=%s not found", video_id)
            return None
        return VideoRecord.from_row(row)

    def iter_videos(self, chapter_id: int, *, active_only: bool = False) -> Iterable[VideoRecord]:
        statement = _select(_VIDEO_COLUMNS, "videos") + " WHERE chapter_id = ?"
        if active_only:
            statement += " AND is_active = 1"
        statement += " ORDER BY position, id"
        for row in self._fetch_all(statement, (chapter_id,), action="videos.iter"):
            yield VideoRecord.from_row(row)

    def list_referenced_videos(self, chapter_id: int) -> List[VideoRecord]:
        """Videos present in the chapter's reference list."""

        rows = self._fetch_all(
            _select(_VIDEO_COLUMNS, "videos", "v")
            + " JOIN chapter_videos cv ON cv.video_id = v.id"
            + " WHERE cv.chapter_id = ? ORDER BY cv.slot",
            (chapter_id,),
            action="videos.referenced",
        )
        return [VideoRecord.from_row(row) for row in rows]

    def video_ids_for_chapter(self, chapter_id: int) -> List[int]:
        rows = self._fetch_all(
            "SELECT video_id FROM chapter_videos WHERE chapter_id = ? ORDER BY slot",
            (chapter_id,),
            action="chapter_videos.list",
        )
        return [int(row[0]) for row in rows]

    def max_video_order(self, chapter_id: int) -> Optional[int]:
        value = self._scalar(
            "SELECT MAX(position) FROM videos WHERE chapter_id = ?",
            (chapter_id,),
            action="videos.max_order",
        )
        return int(value) if value is not None else None

    def attach_video(self, chapter_id: int, video_id: int) -> None:
        """Append *video_id* to the end of the chapter's reference list."""

        self._write(
            """
            INSERT OR IGNORE INTO chapter_videos(chapter_id, video_id, slot)
            VALUES (?, ?, (SELECT COALESCE(MAX(slot), 0) + 1 FROM chapter_videos WHERE chapter_id = ?))
            """,
            (chapter_id, video_id, chapter_id),
            action="chapter_videos.attach",
        )
        LOGGER.debug("Video id=%s attached to chapter_id=%s", video_id, chapter_id)

    def detach_video(self, chapter_id: int, video_id: int) -> None:
        self._write(
            "DELETE FROM chapter_videos WHERE chapter_id = ? AND video_id = ?",
            (chapter_id, video_id),
            action="chapter_videos.detach",
        )
        LOGGER.debug("Video id=%s detached from chapter_id=%s", video_id, chapter_id)

    def update_video(
        self,
        video_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        video_url: Optional[str] = None,
        thumbnail: Optional[str] = None,
        duration: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> bool:
        return self._update_row(
            "videos",
            video_id,
            {
                "title": _MISSING if title is None else title,
                "description": _MISSING if description is None else description,
                "video_url": _MISSING if video_url is None else video_url,
                "thumbnail": _MISSING if thumbnail is None else thumbnail,
                "duration": _MISSING if duration is None else duration,
                "is_active": _MISSING if is_active is None else int(is_active),
            },
            action="videos.update",
        )

    def increment_video_views(self, video_id: int) -> None:
        self._write(
            "UPDATE videos SET views = views + 1 WHERE id = ?",
            (video_id,),
            action="videos.increment_views",
        )

    def remove_video(self, video_id: int) -> None:
        LOGGER.debug("Removing video id=%s", video_id)
        self._write("DELETE FROM videos WHERE id = ?", (video_id,), action="videos.delete")

    def reorder_videos(self, chapter_id: int, video_ids: Sequence[int]) -> None:
        """Assign orders 1..n and rewrite the reference list in the same sequence."""

        with self._session() as connection:
            for index, video_id in enumerate(video_ids, start=1):
                self._execute(
                    connection,
                    "UPDATE videos SET position = ? WHERE id = ? AND chapter_id = ?",
                    (index, video_id, chapter_id),
                    action="videos.reorder",
                )
                self._execute(
                    connection,
                    "UPDATE chapter_videos SET slot = ? WHERE chapter_id = ? AND video_id = ?",
                    (index, chapter_id, video_id),
                    action="chapter_videos.reorder",
                )
        LOGGER.debug("Reordered %d videos for chapter_id=%s", len(video_ids), chapter_id)

    def resolve_video_owner(self, video_id: int) -> Optional[str]:
        """Creator of the course that owns the chapter holding *video_id*."""

        return self._scalar(
            """
            SELECT courses.created_by FROM videos
            JOIN chapters ON chapters.id = videos.chapter_id
            JOIN courses ON courses.id = chapters.course_id
            WHERE videos.id = ?
            """,
            (video_id,),
            action="videos.resolve_owner",
        )


__all__ = [
    "COURSE_STATUSES",
    "ChapterRecord",
    "ContentRepository",
    "CourseRecord",
    "VideoRecord",
]
