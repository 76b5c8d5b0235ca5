from __future__ import annotations

import pytest

from course_studio.errors import ValidationError
from course_studio.services.ordering import OrderSequencer
from course_studio.services.storage import ContentRepository


@pytest.fixture()
def course_id(repository: ContentRepository) -> int:
    return repository.add_course("Course", "Description", created_by="u1")


def test_first_child_gets_order_one(repository: ContentRepository, course_id: int) -> None:
    sequencer = OrderSequencer(repository)

    assert sequencer.next_chapter_order(course_id) == 1
    repository.add_chapter(course_id, "One", "d", order=1)
    assert sequencer.next_chapter_order(course_id) == 2


def test_interleaved_creates_may_share_an_order(repository: ContentRepository, course_id: int) -> None:
    first, second = OrderSequencer(repository), OrderSequencer(repository)

    # Both writers read the maximum before either insert lands.
    first_order = first.next_chapter_order(course_id)
    second_order = second.next_chapter_order(course_id)
    one = repository.add_chapter(course_id, "One", "d", order=first_order)
    two = repository.add_chapter(course_id, "Two", "d", order=second_order)

    chapters = list(repository.iter_chapters(course_id))
    assert [chapter.order for chapter in chapters] == [1, 1]
    assert [chapter.id for chapter in chapters] == [one, two]
    assert first.next_chapter_order(course_id) == 2


def test_gaps_are_not_repacked(repository: ContentRepository, course_id: int) -> None:
    sequencer = OrderSequencer(repository)
    chapter_id = repository.add_chapter(course_id, "One", "d", order=1)
    repository.add_chapter(course_id, "Three", "d", order=3)

    video_id = repository.add_video(chapter_id, "Video", "d", "url", order=4)
    assert sequencer.next_chapter_order(course_id) == 4
    assert sequencer.next_video_order(chapter_id) == 5

    repository.remove_video(video_id)
    assert sequencer.next_video_order(chapter_id) == 1


def test_renumber_puts_listed_chapters_first(repository: ContentRepository, course_id: int) -> None:
    sequencer = OrderSequencer(repository)
    ids = []
    for index, name in enumerate(["A", "B", "C"], start=1):
        chapter_id = repository.add_chapter(course_id, name, "d", order=index)
        repository.attach_chapter(course_id, chapter_id)
        ids.append(chapter_id)

    sequencer.renumber_chapters(course_id, [ids[2]])

    chapters = list(repository.iter_chapters(course_id))
    assert [chapter.name for chapter in chapters] == ["C", "A", "B"]
    assert [chapter.order for chapter in chapters] == [1, 2, 3]
    assert repository.chapter_ids_for_course(course_id) == [ids[2], ids[0], ids[1]]


def test_renumber_videos_rewrites_reference_list(repository: ContentRepository, course_id: int) -> None:
    sequencer = OrderSequencer(repository)
    chapter_id = repository.add_chapter(course_id, "Chapter", "d", order=1)
    first = repository.add_video(chapter_id, "First", "d", "url", order=1)
    second = repository.add_video(chapter_id, "Second", "d", "url", order=2)
    repository.attach_video(chapter_id, first)
    repository.attach_video(chapter_id, second)

    sequencer.renumber_videos(chapter_id, [second, first])

    assert [video.id for video in repository.iter_videos(chapter_id)] == [second, first]
    assert repository.video_ids_for_chapter(chapter_id) == [second, first]


def test_renumber_rejects_duplicates_and_foreign_ids(
    repository: ContentRepository, course_id: int
) -> None:
    sequencer = OrderSequencer(repository)
    chapter_id = repository.add_chapter(course_id, "A", "d", order=1)

    with pytest.raises(ValidationError, match="Duplicate chapter"):
        sequencer.renumber_chapters(course_id, [chapter_id, chapter_id])
    with pytest.raises(ValidationError, match="Unknown chapter"):
        sequencer.renumber_chapters(course_id, [chapter_id, 999])
