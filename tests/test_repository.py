from __future__ import annotations

import sqlite3

import pytest

from course_studio.config import AppConfig
from course_studio.services.storage import ContentRepository


def test_repository_crud_cycle(temp_config: AppConfig) -> None:
    repository = ContentRepository(temp_config)

    course_id = repository.add_course("Food Safety", "Kitchen basics", created_by="u1")
    chapter_id = repository.add_chapter(course_id, "Introduction", "Why it matters", order=1)
    repository.attach_chapter(course_id, chapter_id)
    video_id = repository.add_video(
        chapter_id,
        "Welcome",
        "Overview",
        "https://example.com/welcome.mp4",
        order=1,
        duration="05:30",
    )
    repository.attach_video(chapter_id, video_id)

    course = repository.get_course(course_id)
    assert course is not None
    assert course.status == "draft"
    assert course.total_duration == "00:00"
    assert course.created_by == "u1"

    chapters = list(repository.iter_chapters(course_id))
    assert [chapter.name for chapter in chapters] == ["Introduction"]
    assert chapters[0].order == 1

    video = repository.get_video(video_id)
    assert video is not None
    assert video.is_active is True
    assert video.views == 0
    assert video.duration == "05:30"

    assert repository.chapter_ids_for_course(course_id) == [chapter_id]
    assert repository.video_ids_for_chapter(chapter_id) == [video_id]
    assert repository.resolve_course_owner(chapter_id) == "u1"
    assert repository.resolve_video_owner(video_id) == "u1"

    repository.detach_video(chapter_id, video_id)
    repository.remove_video(video_id)
    assert repository.get_video(video_id) is None
    assert repository.video_ids_for_chapter(chapter_id) == []

    repository.detach_chapter(course_id, chapter_id)
    repository.remove_chapter(chapter_id)
    assert not list(repository.iter_chapters(course_id))

    repository.remove_course(course_id)
    assert repository.get_course(course_id) is None


def test_owner_lookup_for_missing_rows_is_none(repository: ContentRepository) -> None:
    assert repository.resolve_course_owner(999) is None
    assert repository.resolve_video_owner(999) is None


def test_chapter_row_requires_existing_course(repository: ContentRepository) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        repository.add_chapter(999, "Orphan", "No course", order=1)


def test_course_with_chapters_cannot_be_removed_directly(repository: ContentRepository) -> None:
    course_id = repository.add_course("Course", "Description", created_by="u1")
    repository.add_chapter(course_id, "Chapter", "Description", order=1)

    with pytest.raises(sqlite3.IntegrityError):
        repository.remove_course(course_id)


def test_update_leaves_unspecified_fields_untouched(repository: ContentRepository) -> None:
    course_id = repository.add_course("Course", "Description", created_by="u1", thumbnail="a.png")

    assert repository.update_course(course_id, name="Renamed") is True
    assert repository.update_course(course_id) is False

    course = repository.get_course(course_id)
    assert course is not None
    assert course.name == "Renamed"
    assert course.description == "Description"
    assert course.thumbnail == "a.png"


def test_list_courses_filters_and_paginates(repository: ContentRepository) -> None:
    first = repository.add_course("First", "d", created_by="u1")
    second = repository.add_course("Second", "d", created_by="u1", status="published")
    repository.add_course("Third", "d", created_by="u2")

    mine = repository.list_courses(created_by="u1")
    assert [course.id for course in mine] == [second, first]
    assert repository.count_courses(created_by="u1") == 2
    assert repository.count_courses(status="published") == 1
    assert len(repository.list_courses(offset=0, limit=2)) == 2
    assert len(repository.list_courses(offset=2, limit=2)) == 1


def test_iter_videos_can_skip_inactive(repository: ContentRepository) -> None:
    course_id = repository.add_course("Course", "d", created_by="u1")
    chapter_id = repository.add_chapter(course_id, "Chapter", "d", order=1)
    active = repository.add_video(chapter_id, "Active", "d", "url", order=1)
    hidden = repository.add_video(chapter_id, "Hidden", "d", "url", order=2, is_active=False)

    assert [video.id for video in repository.iter_videos(chapter_id)] == [active, hidden]
    assert [video.id for video in repository.iter_videos(chapter_id, active_only=True)] == [active]

    repository.increment_video_views(active)
    repository.increment_video_views(active)
    video = repository.get_video(active)
    assert video is not None and video.views == 2


def test_event_emitter_receives_timed_actions(repository: ContentRepository) -> None:
    events = []
    repository.configure_event_emitter(
        lambda action, **kwargs: events.append((action, kwargs))
    )

    repository.add_course("Course", "d", created_by="u1")

    action, details = events[-1]
    assert action == "courses.insert"
    assert details["payload"]["status"] == "ok"
    assert details["payload"]["rowcount"] == 1
    assert details["duration_ms"] >= 0
