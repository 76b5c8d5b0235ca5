from __future__ import annotations

import pytest

from course_studio.errors import ForbiddenError
from course_studio.services.access import Principal, Role, can_access, require_access


def test_owner_and_admin_are_allowed() -> None:
    assert can_access(Principal("u1"), "u1")
    assert can_access(Principal("root", Role.ADMIN), "u1")
    assert can_access(Principal("root", Role.ADMIN), None)


def test_other_principals_are_denied() -> None:
    assert not can_access(Principal("u2"), "u1")
    assert not can_access(Principal("u1", Role.STUDENT), "u2")
    assert not can_access(Principal("u1"), None)


def test_require_access_raises_forbidden() -> None:
    with pytest.raises(ForbiddenError) as excinfo:
        require_access(Principal("u2"), "u1", resource="course:1")
    assert excinfo.value.message == "Not authorized"


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        ("admin", Role.ADMIN),
        ("ADMIN", Role.ADMIN),
        ("instructor", Role.INSTRUCTOR),
        (None, Role.STUDENT),
        ("  ", Role.STUDENT),
        ("superuser", Role.STUDENT),
    ],
)
def test_principal_from_values_resolves_roles(role, expected) -> None:
    principal = Principal.from_values(" u1 ", role)
    assert principal.id == "u1"
    assert principal.role is expected
