from __future__ import annotations

from course_studio.services.seeding import ADMIN, INSTRUCTOR, seed_demo_content


def test_seed_derives_durations_through_the_manager(manager) -> None:
    result = seed_demo_content(manager)

    repository = manager.repository
    food_safety = repository.get_course(result.course_ids[0])
    assert food_safety is not None
    assert food_safety.created_by == ADMIN.id
    assert food_safety.status == "published"
    assert food_safety.total_duration == "38:15"

    chapters = list(repository.iter_chapters(food_safety.id))
    assert [chapter.duration for chapter in chapters] == ["15:30", "22:45", "0:00"]
    assert [chapter.order for chapter in chapters] == [1, 2, 3]

    kitchen = repository.get_course(result.course_ids[2])
    assert kitchen.status == "draft"
    assert kitchen.created_by == INSTRUCTOR.id


def test_reseeding_replaces_existing_catalogue(manager) -> None:
    seed_demo_content(manager)
    result = seed_demo_content(manager)

    assert result.removed_courses == 3
    assert manager.repository.count_courses() == 3

    kept = seed_demo_content(manager, reset=False)
    assert kept.removed_courses == 0
    assert manager.repository.count_courses() == 6
