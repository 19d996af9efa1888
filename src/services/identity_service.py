"""
Map verified identities to application user rows.

Two resolution modes:

- strict: the caller must already have a user row. Used by edit, delete and
  staff-pick operations so they never silently register anyone.
- provisioning: the row is created on first use. Used only when creating a
  recommendation and by the explicit post-sign-in "ensure" call.

Being signed in with the identity provider is therefore not the same as being
registered in this app.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import PROFILE_FIELD_MAX_LENGTH, User, UserRole
from schemas.identity import Identity
from services.exceptions import InvalidArgumentError, UnauthenticatedError, UserNotFoundError

logger = logging.getLogger(__name__)


def _clip(value: str) -> str:
    return value[:PROFILE_FIELD_MAX_LENGTH]


def derive_full_name(identity: Identity) -> str | None:
    """Given + family name when both are present, else the display-name claim."""
    if identity.given_name and identity.family_name:
        return _clip(f"{identity.given_name} {identity.family_name}".strip())
    if identity.name is None:
        return None
    return _clip(identity.name)


def derive_username(identity: Identity) -> str:
    """Username claim, else the local part of the email, else ``user_<subject[:8]>``."""
    if identity.username is not None:
        return _clip(identity.username)
    if identity.email is not None:
        return _clip(identity.email.split("@")[0])
    return f"user_{identity.subject[:8]}"


async def get_user_by_subject(db: AsyncSession, subject: str) -> User | None:
    """Look up a user by identity-provider subject."""
    result = await db.execute(
        select(User).where(User.external_subject_id == subject),
    )
    return result.scalar_one_or_none()


async def get_current_user(db: AsyncSession, identity: Identity | None) -> User | None:
    """Return the caller's user row, or None when anonymous or unregistered."""
    if identity is None:
        return None
    return await get_user_by_subject(db, identity.subject)


async def resolve_user_strict(db: AsyncSession, identity: Identity | None) -> User:
    """
    Return the caller's existing user row.

    Raises:
        UnauthenticatedError: No identity was presented.
        UserNotFoundError: The identity has never been provisioned.
    """
    if identity is None:
        raise UnauthenticatedError()
    user = await get_user_by_subject(db, identity.subject)
    if user is None:
        raise UserNotFoundError()
    return user


async def resolve_user_provisioning(db: AsyncSession, identity: Identity | None) -> User:
    """
    Return the caller's user row, creating it on first call.

    An existing row is returned untouched; claims are only read when the row
    is created. Two concurrent first calls for the same subject race on the
    unique constraint: the loser's insert is rolled back to a savepoint and the
    winner's row is re-read.

    Claims longer than the profile columns are truncated; a subject that
    does not fit is rejected.

    Raises:
        UnauthenticatedError: No identity was presented.
        InvalidArgumentError: The subject is longer than the column allows.
    """
    if identity is None:
        raise UnauthenticatedError()
    if len(identity.subject) > PROFILE_FIELD_MAX_LENGTH:
        raise InvalidArgumentError(
            f"subject exceeds maximum length of {PROFILE_FIELD_MAX_LENGTH} characters",
        )

    user = await get_user_by_subject(db, identity.subject)
    if user is not None:
        return user

    user = User(
        external_subject_id=identity.subject,
        role=UserRole.USER,
        full_name=derive_full_name(identity),
        username=derive_username(identity),
        email=_clip(identity.email or ""),
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        existing = await get_user_by_subject(db, identity.subject)
        if existing is None:
            raise
        logger.info(
            "user_provision_race_resolved",
            extra={"subject": identity.subject, "user_id": existing.id},
        )
        return existing

    logger.info(
        "user_provisioned",
        extra={"subject": identity.subject, "user_id": user.id},
    )
    return user
