from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from course_studio.bootstrap import Bootstrapper
from course_studio.config import AppConfig
from course_studio.services.access import Principal, Role
from course_studio.services.lifecycle import CourseLifecycleManager
from course_studio.services.storage import ContentRepository


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "default.json"
    config_file.write_text(
        """
        {
            \"storage_root\": \"storage\",\n
            \"database_file\": \"storage/courses.db\",\n
            \"page_size\": 10\n
        }
        """,
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/courses.db",
            "page_size": 10,
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def repository(temp_config: AppConfig) -> ContentRepository:
    return ContentRepository(temp_config)


@pytest.fixture()
def manager(repository: ContentRepository) -> CourseLifecycleManager:
    return CourseLifecycleManager(repository)


@pytest.fixture()
def admin() -> Principal:
    return Principal(id="root", role=Role.ADMIN)


@pytest.fixture()
def owner() -> Principal:
    return Principal(id="u1", role=Role.INSTRUCTOR)


@pytest.fixture()
def other() -> Principal:
    return Principal(id="u2", role=Role.INSTRUCTOR)
