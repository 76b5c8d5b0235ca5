"""Where Course Studio keeps its data, read from ``config/default.json``."""

from __future__ import annotations

import contextlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
HOME_STORAGE = Path(".course_studio") / "storage"


def can_write_to(directory: Path) -> bool:
    """Create *directory* if needed and check a file can be written inside it."""

    check_file = directory / ".course_studio_write_check"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        check_file.write_text("ok", encoding="utf-8")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            check_file.unlink()
    return True


def _storage_root(preferred: Path) -> Path:
    if can_write_to(preferred):
        return preferred
    fallback = (Path.home() / HOME_STORAGE).resolve()
    if fallback != preferred and can_write_to(fallback):
        LOGGER.warning("Storage directory '%s' is not writable; using '%s'", preferred, fallback)
        return fallback
    # Bootstrapper reports the unusable directory.
    LOGGER.warning("Storage directory '%s' is not writable", preferred)
    return preferred


def _page_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring invalid page_size %r", value)
        return DEFAULT_PAGE_SIZE
    return size if size > 0 else DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class AppConfig:
    storage_root: Path
    database_file: Path
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        """Resolve paths against *base_path*, moving to home storage if needed.

        When the storage root moves, or the database directory cannot be
        written, the database file is placed directly under the storage root.
        """

        preferred = (base_path / mapping["storage_root"]).resolve()
        storage_root = _storage_root(preferred)

        database_file = (base_path / mapping["database_file"]).resolve()
        if storage_root != preferred or not can_write_to(database_file.parent):
            relocated = storage_root / database_file.name
            if relocated != database_file:
                LOGGER.warning("Database '%s' moved to '%s'", database_file, relocated)
                database_file = relocated

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            page_size=_page_size(mapping.get("page_size", DEFAULT_PAGE_SIZE)),
        )


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    base_path = Path(__file__).resolve().parent.parent
    config_path = config_path or base_path / "config" / "default.json"
    with config_path.open("r", encoding="utf-8") as config_file:
        return AppConfig.from_mapping(json.load(config_file), base_path=base_path)


__all__ = ["AppConfig", "DEFAULT_PAGE_SIZE", "can_write_to", "load_config"]
