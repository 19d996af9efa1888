"""Recommendation endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import check_write_rate_limit, get_async_session, get_optional_identity
from schemas.identity import Identity
from schemas.recommendation import (
    RecommendationCreate,
    RecommendationListResponse,
    RecommendationResponse,
    RecommendationUpdate,
)
from services import recommendation_service

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("/", response_model=list[RecommendationResponse])
async def get_public_recommendations(
    genre: list[str] | None = Query(
        default=None, description="Keep items tagged with any of these genres",
    ),
    q: str | None = Query(
        default=None, description="Search title, genre, blurb, link and added-by name",
    ),
    db: AsyncSession = Depends(get_async_session),
) -> list[RecommendationResponse]:
    """
    Public feed: the latest 50 recommendations, newest first.

    No authentication. "Added by" names are freshened with each owner's
    current username where available. ``genre`` and ``q`` narrow the feed.
    """
    items = await recommendation_service.get_public_recommendations(db)
    if genre or q:
        items = recommendation_service.filter_feed(items, genre, q)
    return items


@router.get("/all", response_model=RecommendationListResponse)
async def list_all_recommendations(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> RecommendationListResponse:
    """Every recommendation with pagination. Requires a signed-in caller."""
    items, total = await recommendation_service.list_all_recommendations(
        db, identity, offset, limit,
    )
    return RecommendationListResponse(
        items=[RecommendationResponse.model_validate(r) for r in items],
        total=total,
        offset=offset,
        limit=limit,
        has_more=(offset + len(items)) < total,
    )


@router.post(
    "/",
    response_model=RecommendationResponse,
    status_code=201,
    dependencies=[Depends(check_write_rate_limit)],
)
async def create_recommendation(
    data: RecommendationCreate,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> RecommendationResponse:
    """Create a recommendation. Registers the caller on their first post."""
    recommendation = await recommendation_service.create_recommendation(db, identity, data)
    return RecommendationResponse.model_validate(recommendation)


@router.get("/{recommendation_id}", response_model=RecommendationResponse | None)
async def get_recommendation(
    recommendation_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> RecommendationResponse | None:
    """
    Get a single recommendation by ID.

    Returns ``null`` (not 404) when it does not exist, so clients can show
    "this was deleted" without treating it as an error.
    """
    recommendation = await recommendation_service.get_recommendation(db, recommendation_id)
    if recommendation is None:
        return None
    return RecommendationResponse.model_validate(recommendation)


@router.put(
    "/{recommendation_id}",
    response_model=RecommendationResponse,
    dependencies=[Depends(check_write_rate_limit)],
)
async def update_recommendation(
    recommendation_id: int,
    data: RecommendationUpdate,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> RecommendationResponse:
    """Update a recommendation (owner or admin)."""
    recommendation = await recommendation_service.update_recommendation(
        db, identity, recommendation_id, data,
    )
    return RecommendationResponse.model_validate(recommendation)


@router.delete(
    "/{recommendation_id}",
    status_code=204,
    dependencies=[Depends(check_write_rate_limit)],
)
async def delete_recommendation(
    recommendation_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a recommendation permanently (owner or admin)."""
    await recommendation_service.delete_recommendation(db, identity, recommendation_id)


@router.post(
    "/{recommendation_id}/staff-pick",
    response_model=RecommendationResponse,
    dependencies=[Depends(check_write_rate_limit)],
)
async def toggle_staff_pick(
    recommendation_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> RecommendationResponse:
    """Toggle the staff-pick flag (admin only)."""
    recommendation = await recommendation_service.toggle_staff_pick(
        db, identity, recommendation_id,
    )
    return RecommendationResponse.model_validate(recommendation)
