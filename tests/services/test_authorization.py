"""Tests for the recommendation authorization guard."""
import pytest

from models.recommendation import Recommendation
from models.user import User, UserRole
from services.authorization import Operation, can_mutate, require_can_mutate
from services.exceptions import UnauthorizedError


def _user(subject: str, role: UserRole = UserRole.USER) -> User:
    return User(id=1, external_subject_id=subject, role=role, username=subject, email="")


def _recommendation(owner: str) -> Recommendation:
    return Recommendation(
        id=10,
        title="Foo",
        genre="Action",
        link="https://x",
        blurb="bar",
        owner_subject_id=owner,
        display_name=owner,
        is_staff_pick=False,
    )


@pytest.mark.parametrize(
    ("subject", "role", "operation", "expected"),
    [
        # owner, non-admin
        ("owner", UserRole.USER, Operation.EDIT, True),
        ("owner", UserRole.USER, Operation.DELETE, True),
        ("owner", UserRole.USER, Operation.FLAG, False),
        # stranger, non-admin
        ("stranger", UserRole.USER, Operation.EDIT, False),
        ("stranger", UserRole.USER, Operation.DELETE, False),
        ("stranger", UserRole.USER, Operation.FLAG, False),
        # admin, not owner
        ("admin", UserRole.ADMIN, Operation.EDIT, True),
        ("admin", UserRole.ADMIN, Operation.DELETE, True),
        ("admin", UserRole.ADMIN, Operation.FLAG, True),
    ],
)
def test__can_mutate__matrix(
    subject: str, role: UserRole, operation: Operation, expected: bool,
) -> None:
    assert can_mutate(_user(subject, role), _recommendation("owner"), operation) is expected


def test__can_mutate__admin_owner_can_flag_own_post() -> None:
    admin = _user("owner", UserRole.ADMIN)
    assert can_mutate(admin, _recommendation("owner"), Operation.FLAG) is True


def test__can_mutate__role_read_back_as_plain_string() -> None:
    """Roles loaded from the database are plain strings, not enum members."""
    admin = _user("someone", UserRole.ADMIN)
    admin.role = "admin"
    assert can_mutate(admin, _recommendation("owner"), Operation.DELETE) is True


def test__require_can_mutate__raises_unauthorized_with_operation_message() -> None:
    with pytest.raises(UnauthorizedError) as exc_info:
        require_can_mutate(_user("owner"), _recommendation("owner"), Operation.FLAG)
    assert exc_info.value.code == "UNAUTHORIZED"
    assert "only admins" in exc_info.value.message


def test__require_can_mutate__allows_owner_delete() -> None:
    require_can_mutate(_user("owner"), _recommendation("owner"), Operation.DELETE)
