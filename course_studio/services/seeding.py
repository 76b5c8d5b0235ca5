"""Demo catalogue used by ``run.py seed``.

Everything is created through :class:`CourseLifecycleManager` so orders and
durations are derived exactly as they would be for real requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .access import Principal, Role
from .lifecycle import CourseLifecycleManager

LOGGER = logging.getLogger(__name__)


ADMIN = Principal(id="admin", role=Role.ADMIN)
INSTRUCTOR = Principal(id="chef-maria", role=Role.INSTRUCTOR)

_IMAGE = "https://images.unsplash.com/{}?w=800&q=80"
_SAMPLE_VIDEO = "https://sample-videos.com/zip/10/mp4/SampleVideo_1280x720_{}.mp4"

DEMO_CATALOGUE: List[Dict[str, Any]] = [
    {
        "owner": ADMIN,
        "name": "Food Safety & Hygiene",
        "description": (
            "Essential food safety practices for restaurant staff including proper "
            "handling, storage, and preparation techniques."
        ),
        "thumbnail": _IMAGE.format("photo-1414235077428-338989a2e8c0"),
        "publish": True,
        "chapters": [
            {
                "name": "Introduction to Food Safety",
                "description": "Basic principles of food safety and why it matters",
                "videos": [
                    {
                        "title": "Welcome to Food Safety Training",
                        "description": "An overview of what you'll learn in this course",
                        "thumbnail": _IMAGE.format("photo-1504674900247-0877df9cc836"),
                        "video_url": _SAMPLE_VIDEO.format("1mb"),
                        "duration": "05:30",
                    },
                    {
                        "title": "The Importance of Food Safety",
                        "description": "Understanding why food safety is critical for restaurants",
                        "thumbnail": _IMAGE.format("photo-1551782450-17144efb5723"),
                        "video_url": _SAMPLE_VIDEO.format("2mb"),
                        "duration": "10:00",
                    },
                ],
            },
            {
                "name": "Food Handling & Storage",
                "description": "Proper techniques for handling and storing different types of food",
                "videos": [
                    {
                        "title": "Temperature Control",
                        "description": "How to maintain proper temperatures for food safety",
                        "thumbnail": _IMAGE.format("photo-1556909114-f6e7ad7d3136"),
                        "video_url": _SAMPLE_VIDEO.format("5mb"),
                        "duration": "12:15",
                    },
                    {
                        "title": "Cross-Contamination Prevention",
                        "description": "Techniques to prevent cross-contamination in the kitchen",
                        "thumbnail": _IMAGE.format("photo-1556909114-f6e7ad7d3136"),
                        "video_url": _SAMPLE_VIDEO.format("10mb"),
                        "duration": "10:30",
                    },
                ],
            },
            {
                "name": "Personal Hygiene",
                "description": "Maintaining personal hygiene standards in a professional kitchen",
                "videos": [],
            },
        ],
    },
    {
        "owner": INSTRUCTOR,
        "name": "Customer Service Excellence",
        "description": (
            "Learn how to provide exceptional customer service and create memorable "
            "dining experiences."
        ),
        "thumbnail": _IMAGE.format("photo-1517248135467-4c7edcad34c4"),
        "publish": True,
        "chapters": [],
    },
    {
        "owner": INSTRUCTOR,
        "name": "Kitchen Operations",
        "description": (
            "Master the fundamentals of kitchen operations, equipment handling, and "
            "team coordination."
        ),
        "thumbnail": _IMAGE.format("photo-1556909114-f6e7ad7d3136"),
        "publish": False,
        "chapters": [],
    },
]


@dataclass
class SeedResult:
    removed_courses: int = 0
    course_ids: List[int] = field(default_factory=list)
    chapter_ids: List[int] = field(default_factory=list)
    video_ids: List[int] = field(default_factory=list)


def seed_demo_content(manager: CourseLifecycleManager, *, reset: bool = True) -> SeedResult:
    """Load :data:`DEMO_CATALOGUE`, optionally deleting existing courses first."""

    result = SeedResult()
    if reset:
        for course in list(manager.repository.iter_courses()):
            manager.delete_course(ADMIN, course.id)
            result.removed_courses += 1
        LOGGER.info("Removed %d existing course(s)", result.removed_courses)

    for entry in DEMO_CATALOGUE:
        owner: Principal = entry["owner"]
        course = manager.create_course(
            owner,
            name=entry["name"],
            description=entry["description"],
            thumbnail=entry["thumbnail"],
        )
        result.course_ids.append(course.id)
        for chapter_entry in entry["chapters"]:
            chapter = manager.create_chapter(
                owner,
                course.id,
                name=chapter_entry["name"],
                description=chapter_entry["description"],
            )
            result.chapter_ids.append(chapter.id)
            for video_entry in chapter_entry["videos"]:
                video = manager.create_video(owner, chapter.id, **video_entry)
                result.video_ids.append(video.id)
        if entry["publish"]:
            manager.toggle_publish(owner, course.id)

    LOGGER.info(
        "Seeded %d course(s), %d chapter(s) and %d video(s)",
        len(result.course_ids),
        len(result.chapter_ids),
        len(result.video_ids),
    )
    return result


__all__ = ["ADMIN", "DEMO_CATALOGUE", "INSTRUCTOR", "SeedResult", "seed_demo_content"]
