"""Ownership-based authorization shared by courses, chapters and videos."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import ForbiddenError
from .events import ACCESS, emit_structured_event

LOGGER = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


@dataclass(frozen=True)
class Principal:
    """An already-authenticated actor."""

    id: str
    role: Role = Role.STUDENT

    @classmethod
    def from_values(cls, user_id: str, role: Optional[str]) -> "Principal":
        """Build a principal; a missing or unknown role is the least privileged."""

        try:
            resolved = Role((role or Role.STUDENT.value).strip().lower())
        except ValueError:
            LOGGER.debug("Unknown role %r; treating principal %s as student", role, user_id)
            resolved = Role.STUDENT
        return cls(id=str(user_id).strip(), role=resolved)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def can_access(principal: Principal, owner_id: Optional[str]) -> bool:
    """Admins may touch anything, everyone else only what they created."""

    if principal.is_admin:
        return True
    return owner_id is not None and str(owner_id) == principal.id


def require_access(principal: Principal, owner_id: Optional[str], *, resource: str) -> None:
    """Raise :class:`ForbiddenError` unless :func:`can_access` permits."""

    if can_access(principal, owner_id):
        return
    emit_structured_event(
        ACCESS,
        "Access denied",
        payload={"principal": principal.id, "role": principal.role.value, "resource": resource},
        level=logging.INFO,
    )
    raise ForbiddenError()


__all__ = ["Principal", "Role", "can_access", "require_access"]
