"""Tests for identity resolution and lazy user provisioning."""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import PROFILE_FIELD_MAX_LENGTH, User, UserRole
from schemas.identity import Identity
from services import identity_service
from services.exceptions import InvalidArgumentError, UnauthenticatedError, UserNotFoundError
from services.identity_service import (
    derive_full_name,
    derive_username,
    get_current_user,
    resolve_user_provisioning,
    resolve_user_strict,
)


async def _user_count(db: AsyncSession, subject: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(User).where(User.external_subject_id == subject),
    )
    return result.scalar_one()


class TestDeriveFullName:
    """Tests for derive_full_name."""

    def test__derive_full_name__joins_given_and_family(self) -> None:
        identity = Identity(subject="s", given_name="Ada", family_name="Lovelace", name="Other")
        assert derive_full_name(identity) == "Ada Lovelace"

    def test__derive_full_name__trims_result(self) -> None:
        identity = Identity(subject="s", given_name=" Ada", family_name="Lovelace ")
        assert derive_full_name(identity) == "Ada Lovelace"

    def test__derive_full_name__falls_back_to_name_claim(self) -> None:
        identity = Identity(subject="s", given_name="Ada", name="Countess")
        assert derive_full_name(identity) == "Countess"

    def test__derive_full_name__unset_without_claims(self) -> None:
        assert derive_full_name(Identity(subject="s")) is None

    def test__derive_full_name__clips_name_claim(self) -> None:
        identity = Identity(subject="s", name="N" * 400)
        assert derive_full_name(identity) == "N" * PROFILE_FIELD_MAX_LENGTH


class TestDeriveUsername:
    """Tests for derive_username."""

    def test__derive_username__prefers_username_claim(self) -> None:
        identity = Identity(subject="s", username="ada", email="lovelace@example.com")
        assert derive_username(identity) == "ada"

    def test__derive_username__uses_email_local_part(self) -> None:
        identity = Identity(subject="s", email="lovelace@example.com")
        assert derive_username(identity) == "lovelace"

    def test__derive_username__synthesizes_from_subject(self) -> None:
        identity = Identity(subject="abcdefghijkl")
        assert derive_username(identity) == "user_abcdefgh"

    def test__derive_username__short_subject(self) -> None:
        assert derive_username(Identity(subject="xyz")) == "user_xyz"


class TestResolveUserStrict:
    """Tests for strict-mode resolution."""

    async def test__resolve_user_strict__requires_identity(self, db_session: AsyncSession) -> None:
        with pytest.raises(UnauthenticatedError):
            await resolve_user_strict(db_session, None)

    async def test__resolve_user_strict__never_creates(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        with pytest.raises(UserNotFoundError) as exc_info:
            await resolve_user_strict(db_session, user_a)
        assert "creating a recommendation" in exc_info.value.message
        assert await _user_count(db_session, user_a.subject) == 0

    async def test__resolve_user_strict__returns_existing(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        created = await resolve_user_provisioning(db_session, user_a)
        resolved = await resolve_user_strict(db_session, user_a)
        assert resolved.id == created.id


class TestResolveUserProvisioning:
    """Tests for provisioning-mode resolution."""

    async def test__resolve_user_provisioning__requires_identity(
        self, db_session: AsyncSession,
    ) -> None:
        with pytest.raises(UnauthenticatedError):
            await resolve_user_provisioning(db_session, None)

    async def test__resolve_user_provisioning__creates_user_from_claims(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        user = await resolve_user_provisioning(db_session, user_a)

        assert user.id is not None
        assert user.external_subject_id == "u_a"
        assert user.role == UserRole.USER
        assert user.full_name == "Alice Anderson"
        assert user.username == "alice"
        assert user.email == "alice@example.com"
        assert user.created_at is not None

    async def test__resolve_user_provisioning__missing_email_stored_empty(
        self, db_session: AsyncSession,
    ) -> None:
        user = await resolve_user_provisioning(db_session, Identity(subject="no-email-subject"))
        assert user.email == ""
        assert user.username == "user_no-email"
        assert user.full_name is None

    async def test__resolve_user_provisioning__is_idempotent(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        first = await resolve_user_provisioning(db_session, user_a)
        second = await resolve_user_provisioning(db_session, user_a)

        assert first.id == second.id
        assert await _user_count(db_session, user_a.subject) == 1

    async def test__resolve_user_provisioning__does_not_refresh_profile(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        await resolve_user_provisioning(db_session, user_a)
        renamed = Identity(subject=user_a.subject, username="new-name", name="New Name")

        user = await resolve_user_provisioning(db_session, renamed)

        assert user.username == "alice"
        assert user.full_name == "Alice Anderson"

    async def test__resolve_user_provisioning__race_rereads_existing_row(
        self, db_session: AsyncSession, user_a: Identity,
    ) -> None:
        """A concurrent insert that wins the race is re-read instead of duplicated."""
        winner = await resolve_user_provisioning(db_session, user_a)
        await db_session.commit()

        real_lookup = identity_service.get_user_by_subject
        # First lookup misses (as if the other request had not committed yet),
        # later lookups see the row.
        lookup = AsyncMock(side_effect=[None, await real_lookup(db_session, user_a.subject)])
        with patch.object(identity_service, "get_user_by_subject", lookup):
            user = await resolve_user_provisioning(db_session, user_a)

        assert user.id == winner.id
        assert lookup.await_count == 2
        assert await _user_count(db_session, user_a.subject) == 1

    async def test__resolve_user_provisioning__clips_long_claims(
        self, db_session: AsyncSession,
    ) -> None:
        identity = Identity(
            subject="long-claims",
            given_name="A" * 200,
            family_name="B" * 200,
            username="u" * 300,
            email="e" * 300 + "@example.com",
        )

        user = await resolve_user_provisioning(db_session, identity)

        assert len(user.full_name) == PROFILE_FIELD_MAX_LENGTH
        assert user.full_name.startswith("A" * 200 + " B")
        assert len(user.username) == PROFILE_FIELD_MAX_LENGTH
        assert len(user.email) == PROFILE_FIELD_MAX_LENGTH

    async def test__resolve_user_provisioning__rejects_over_long_subject(
        self, db_session: AsyncSession,
    ) -> None:
        identity = Identity(subject="s" * (PROFILE_FIELD_MAX_LENGTH + 1))

        with pytest.raises(InvalidArgumentError):
            await resolve_user_provisioning(db_session, identity)
        assert await _user_count(db_session, identity.subject) == 0


class TestGetCurrentUser:
    """Tests for get_current_user."""

    async def test__get_current_user__anonymous_is_none(self, db_session: AsyncSession) -> None:
        assert await get_current_user(db_session, None) is None

    async def test__get_current_user__unregistered_is_none(
        self, db_session: AsyncSession, user_b: Identity,
    ) -> None:
        assert await get_current_user(db_session, user_b) is None

    async def test__get_current_user__registered(
        self, db_session: AsyncSession, user_b: Identity,
    ) -> None:
        created = await resolve_user_provisioning(db_session, user_b)
        user = await get_current_user(db_session, user_b)
        assert user is not None
        assert user.id == created.id
