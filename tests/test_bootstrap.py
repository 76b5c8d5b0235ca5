import sqlite3
from pathlib import Path

import pytest

import course_studio.config as config_module
from course_studio.bootstrap import BootstrapError, Bootstrapper
from course_studio.config import AppConfig


def test_bootstrapper_raises_when_storage_directory_unwritable(
    tmp_path: Path, monkeypatch
) -> None:
    storage_root = tmp_path / "storage"
    database_file = storage_root / "courses.db"

    config = AppConfig(storage_root=storage_root, database_file=database_file)

    original_ensure = config_module.can_write_to

    def fake_ensure(path: Path) -> bool:
        if path.resolve() == storage_root.resolve():
            return False
        return original_ensure(path)

    monkeypatch.setattr(config_module, "can_write_to", fake_ensure)

    with pytest.raises(BootstrapError) as excinfo:
        Bootstrapper(config).initialize()

    assert "storage" in str(excinfo.value).lower()


def test_bootstrapper_creates_schema_idempotently(tmp_path: Path) -> None:
    config = AppConfig(storage_root=tmp_path / "storage", database_file=tmp_path / "storage" / "courses.db")

    Bootstrapper(config).initialize()
    Bootstrapper(config).initialize()

    connection = sqlite3.connect(config.database_file)
    try:
        tables = {
            row[0]
            for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    finally:
        connection.close()

    assert {"courses", "chapters", "videos", "course_chapters", "chapter_videos"} <= tables
