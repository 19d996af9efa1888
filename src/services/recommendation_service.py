"""Service layer for recommendation CRUD and the public feed."""
import logging
from collections import Counter
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.recommendation import GENRE_MAX_LENGTH, TITLE_MAX_LENGTH, Recommendation
from models.user import User
from schemas.genre import GenreCount
from schemas.identity import Identity
from schemas.recommendation import (
    PUBLIC_LIST_LIMIT,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationUpdate,
    parse_genre_tags,
)
from services.authorization import Operation, require_admin, require_can_mutate
from services.exceptions import InvalidArgumentError, NotFoundError, UnauthenticatedError
from services.identity_service import resolve_user_provisioning, resolve_user_strict

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "genre", "link", "blurb")
MAX_FIELD_LENGTHS = {"title": TITLE_MAX_LENGTH, "genre": GENRE_MAX_LENGTH}


def _validated_fields(data: RecommendationCreate) -> dict[str, str]:
    """
    Trim the four text fields and reject empty or over-long values.

    Raises:
        InvalidArgumentError: A field is empty after trimming or longer than
            its column.
    """
    fields = {}
    for name in REQUIRED_FIELDS:
        value = getattr(data, name, None)
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgumentError(f"{name} must not be empty")
        value = value.strip()
        max_length = MAX_FIELD_LENGTHS.get(name)
        if max_length is not None and len(value) > max_length:
            raise InvalidArgumentError(
                f"{name} exceeds maximum length of {max_length} characters",
            )
        fields[name] = value
    return fields


async def get_recommendation(
    db: AsyncSession, recommendation_id: int,
) -> Recommendation | None:
    """Get a recommendation by ID. Returns None when it does not exist."""
    return await db.get(Recommendation, recommendation_id)


async def _get_for_mutation(
    db: AsyncSession,
    identity: Identity | None,
    recommendation_id: int,
    operation: Operation,
) -> tuple[User, Recommendation]:
    """
    Resolve the caller strictly, load the target and run the guard.

    Failure order for edit and delete: UnauthenticatedError,
    UserNotFoundError, NotFoundError, UnauthorizedError.
    """
    user = await resolve_user_strict(db, identity)
    recommendation = await get_recommendation(db, recommendation_id)
    if recommendation is None:
        raise NotFoundError("Recommendation", recommendation_id)
    require_can_mutate(user, recommendation, operation)
    return user, recommendation


async def create_recommendation(
    db: AsyncSession,
    identity: Identity | None,
    data: RecommendationCreate,
) -> Recommendation:
    """
    Create a recommendation owned by the caller.

    Provisions the caller's user row on first use. The owner is recorded by
    subject id and the "added by" name is snapshotted from the user row.
    """
    if identity is None:
        raise UnauthenticatedError()
    fields = _validated_fields(data)
    user = await resolve_user_provisioning(db, identity)

    recommendation = Recommendation(
        **fields,
        owner_subject_id=identity.subject,
        display_name=user.display_name,
        is_staff_pick=False,
    )
    db.add(recommendation)
    await db.flush()
    await db.refresh(recommendation)
    logger.info(
        "recommendation_created",
        extra={"recommendation_id": recommendation.id, "user_id": user.id},
    )
    return recommendation


async def update_recommendation(
    db: AsyncSession,
    identity: Identity | None,
    recommendation_id: int,
    data: RecommendationUpdate,
) -> Recommendation:
    """
    Replace a recommendation's text fields (owner or admin).

    The display-name snapshot is refreshed from the editor's current user row.
    Owner and creation time never change.
    """
    user, recommendation = await _get_for_mutation(
        db, identity, recommendation_id, Operation.EDIT,
    )
    fields = _validated_fields(data)

    for name, value in fields.items():
        setattr(recommendation, name, value)
    recommendation.display_name = user.display_name

    await db.flush()
    await db.refresh(recommendation)
    logger.info(
        "recommendation_updated",
        extra={"recommendation_id": recommendation.id, "user_id": user.id},
    )
    return recommendation


async def delete_recommendation(
    db: AsyncSession,
    identity: Identity | None,
    recommendation_id: int,
) -> None:
    """Permanently delete a recommendation (owner or admin)."""
    user, recommendation = await _get_for_mutation(
        db, identity, recommendation_id, Operation.DELETE,
    )
    await db.delete(recommendation)
    await db.flush()
    logger.info(
        "recommendation_deleted",
        extra={"recommendation_id": recommendation_id, "user_id": user.id},
    )


async def toggle_staff_pick(
    db: AsyncSession,
    identity: Identity | None,
    recommendation_id: int,
) -> Recommendation:
    """
    Flip the staff-pick flag (admin only).

    The admin check runs before the lookup: a non-admin gets
    UnauthorizedError for any id, and NotFoundError is only seen by admins.
    """
    user = await resolve_user_strict(db, identity)
    require_admin(user, recommendation_id, Operation.FLAG)
    recommendation = await get_recommendation(db, recommendation_id)
    if recommendation is None:
        raise NotFoundError("Recommendation", recommendation_id)
    recommendation.is_staff_pick = not recommendation.is_staff_pick
    await db.flush()
    await db.refresh(recommendation)
    logger.info(
        "staff_pick_toggled",
        extra={
            "recommendation_id": recommendation.id,
            "user_id": user.id,
            "is_staff_pick": recommendation.is_staff_pick,
        },
    )
    return recommendation


async def _live_usernames(db: AsyncSession, subjects: set[str]) -> dict[str, str]:
    """Map subject id -> current username for the subjects that have a user row."""
    if not subjects:
        return {}
    result = await db.execute(
        select(User.external_subject_id, User.username)
        .where(User.external_subject_id.in_(subjects)),
    )
    return {subject: username for subject, username in result.all() if username}


async def get_public_recommendations(db: AsyncSession) -> list[RecommendationResponse]:
    """
    Latest recommendations, newest first, capped at PUBLIC_LIST_LIMIT.

    Each item's ``display_name`` is replaced by the owner's current username
    when the owner still has a user row; otherwise the stored snapshot is
    kept. The replacement only affects the response, nothing is written.
    """
    result = await db.execute(
        select(Recommendation)
        .order_by(Recommendation.created_at.desc(), Recommendation.id.desc())
        .limit(PUBLIC_LIST_LIMIT),
    )
    recommendations = result.scalars().all()
    usernames = await _live_usernames(db, {r.owner_subject_id for r in recommendations})

    items = []
    for recommendation in recommendations:
        item = RecommendationResponse.model_validate(recommendation)
        live_name = usernames.get(recommendation.owner_subject_id)
        if live_name:
            item = item.model_copy(update={"display_name": live_name})
        items.append(item)
    return items


def filter_feed(
    items: Sequence[RecommendationResponse],
    genres: Sequence[str] | None = None,
    query: str | None = None,
) -> list[RecommendationResponse]:
    """
    Narrow a feed by genre tags and free-text search.

    Args:
        items: Feed items, already ordered.
        genres: Keep items having ANY of these tags (exact, case-sensitive).
        query: Case-insensitive substring matched against title, genre, blurb,
            link and display name.

    Returns:
        The matching items in their original order.
    """
    selected = {g.strip() for g in genres or [] if g.strip()}
    needle = (query or "").strip().lower()

    filtered = []
    for item in items:
        if selected and not selected.intersection(item.genre_tags):
            continue
        if needle:
            haystack = (item.title, item.genre, item.blurb, item.link, item.display_name)
            if not any(needle in field.lower() for field in haystack):
                continue
        filtered.append(item)
    return filtered


def count_genres(items: Sequence[RecommendationResponse]) -> list[GenreCount]:
    """Tag usage counts, most used first, then alphabetically."""
    counts = Counter(tag for item in items for tag in item.genre_tags)
    return [
        GenreCount(name=name, count=count)
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


async def list_all_recommendations(
    db: AsyncSession,
    identity: Identity | None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Recommendation], int]:
    """
    Page through every recommendation, newest first (signed-in callers only).

    Only an identity is required, not a user row.

    Returns:
        Tuple of (recommendations on this page, total count).
    """
    if identity is None:
        raise UnauthenticatedError()
    total = await count_recommendations(db)
    result = await db.execute(
        select(Recommendation)
        .order_by(Recommendation.created_at.desc(), Recommendation.id.desc())
        .offset(offset)
        .limit(limit),
    )
    return list(result.scalars().all()), total


async def count_recommendations(db: AsyncSession) -> int:
    """Number of stored recommendations."""
    result = await db.execute(select(func.count()).select_from(Recommendation))
    return result.scalar() or 0
