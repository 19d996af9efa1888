"""Pydantic schemas for recommendation endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field


# Maximum recommendations returned by the public feed.
PUBLIC_LIST_LIMIT = 50

# Genres offered as suggestions by clients. The genre field itself is free text.
KNOWN_GENRES = ("Action", "Adventure", "Comedy", "Drama", "Horror", "Fantasy")


def parse_genre_tags(genre: str) -> list[str]:
    """
    Split a comma-separated genre string into tags.

    Tags are trimmed, empty tags are discarded and duplicates dropped
    (first occurrence wins). Case is preserved: "Action" and "action" are
    different tags.
    """
    tags: list[str] = []
    for raw in genre.split(","):
        tag = raw.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class RecommendationCreate(BaseModel):
    """
    Schema for creating a recommendation.

    Only types are enforced here and surrounding whitespace is stripped. Empty
    and over-long fields are rejected by the service layer with
    ``InvalidArgumentError`` (400).
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str
    genre: str
    link: str
    blurb: str


class RecommendationUpdate(RecommendationCreate):
    """Schema for updating a recommendation. All four fields are replaced."""


class RecommendationResponse(BaseModel):
    """Schema for recommendation responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    genre: str
    link: str
    blurb: str
    owner_subject_id: str
    display_name: str
    is_staff_pick: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def genre_tags(self) -> list[str]:
        """Parsed tags from ``genre``, for client-side filtering."""
        return parse_genre_tags(self.genre)


class RecommendationListResponse(BaseModel):
    """Schema for paginated listings of every recommendation."""

    items: list[RecommendationResponse]
    total: int
    offset: int
    limit: int
    has_more: bool
