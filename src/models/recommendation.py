"""Recommendation model."""
from sqlalchemy import Boolean, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin
from models.user import PROFILE_FIELD_MAX_LENGTH

TITLE_MAX_LENGTH = 500
GENRE_MAX_LENGTH = 500


class Recommendation(Base, TimestampMixin):
    """A user-posted recommendation shown on the public feed."""

    __tablename__ = "recommendations"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH))
    # Comma-separated tag list, e.g. "Action, Comedy"
    genre: Mapped[str] = mapped_column(String(GENRE_MAX_LENGTH))
    link: Mapped[str] = mapped_column(Text)
    blurb: Mapped[str] = mapped_column(Text)
    owner_subject_id: Mapped[str] = mapped_column(
        String(PROFILE_FIELD_MAX_LENGTH),
        index=True,
        comment="Creator's external_subject_id, copied at creation (not a foreign key)",
    )
    display_name: Mapped[str] = mapped_column(
        String(PROFILE_FIELD_MAX_LENGTH),
        comment="Snapshot of the owner's full name or username at last write",
    )
    is_staff_pick: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(),
    )
