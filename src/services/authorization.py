"""Ownership and role checks for recommendation mutations."""
import logging
from enum import StrEnum
from typing import NoReturn

from models.recommendation import Recommendation
from models.user import User
from services.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class Operation(StrEnum):
    """Mutations that go through the guard."""

    EDIT = "edit"
    DELETE = "delete"
    FLAG = "flag"  # toggle staff pick


DENIAL_MESSAGES: dict[Operation, str] = {
    Operation.EDIT: "Unauthorized: you may only edit your own recommendations, or be an admin.",
    Operation.DELETE: "Unauthorized: you may only delete your own recommendations, or be an admin.",
    Operation.FLAG: "Unauthorized: only admins can mark staff picks.",
}


def is_owner(user: User, recommendation: Recommendation) -> bool:
    return recommendation.owner_subject_id == user.external_subject_id


def can_mutate(user: User, recommendation: Recommendation, operation: Operation) -> bool:
    """
    Decide whether ``user`` may perform ``operation`` on ``recommendation``.

    Admins may do anything. Owners may edit and delete their own posts, but
    flagging a staff pick is admin-only even for the owner.
    """
    if user.is_admin:
        return True
    if operation == Operation.FLAG:
        return False
    return is_owner(user, recommendation)


def _deny(user: User, recommendation_id: int, operation: Operation) -> NoReturn:
    logger.warning(
        "authorization_denied",
        extra={
            "user_id": user.id,
            "recommendation_id": recommendation_id,
            "operation": operation.value,
        },
    )
    raise UnauthorizedError(DENIAL_MESSAGES[operation])


def require_can_mutate(
    user: User, recommendation: Recommendation, operation: Operation,
) -> None:
    """Raise UnauthorizedError unless ``can_mutate`` allows the operation."""
    if not can_mutate(user, recommendation, operation):
        _deny(user, recommendation.id, operation)


def require_admin(user: User, recommendation_id: int, operation: Operation) -> None:
    """
    Raise UnauthorizedError unless ``user`` is an admin.

    Used for admin-only operations before the target is loaded, so a
    non-admin is refused the same way whether or not the id exists.
    """
    if not user.is_admin:
        _deny(user, recommendation_id, operation)
