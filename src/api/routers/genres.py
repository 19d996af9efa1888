"""Genre endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.genre import GenreListResponse
from schemas.recommendation import KNOWN_GENRES
from services import recommendation_service

router = APIRouter(prefix="/genres", tags=["genres"])


@router.get("/", response_model=GenreListResponse)
async def list_genres(
    db: AsyncSession = Depends(get_async_session),
) -> GenreListResponse:
    """
    Genre tags used on the public feed with their counts.

    Tags come from splitting each item's genre on commas. Sorted by count
    (most used first), then alphabetically.
    """
    items = await recommendation_service.get_public_recommendations(db)
    return GenreListResponse(
        known=list(KNOWN_GENRES),
        tags=recommendation_service.count_genres(items),
    )
