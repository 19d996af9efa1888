"""Pydantic schemas for genre endpoints."""
from pydantic import BaseModel


class GenreCount(BaseModel):
    """Schema for a genre tag with its usage count."""

    name: str
    count: int


class GenreListResponse(BaseModel):
    """Schema for the genres list response."""

    known: list[str]  # Suggested genres offered by clients
    tags: list[GenreCount]  # Tags actually used on the public feed
