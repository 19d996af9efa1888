"""Pydantic schemas for user endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Schema for the current user's record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    external_subject_id: str
    role: str
    full_name: str | None
    username: str
    email: str
    created_at: datetime


class EnsureUserResponse(BaseModel):
    """Schema returned by the post-sign-in reconciliation call."""

    id: int
