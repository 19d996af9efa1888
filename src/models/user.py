"""User model for application-registered identities."""
from enum import StrEnum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, CreatedAtMixin

# Length of the subject, name and email columns
PROFILE_FIELD_MAX_LENGTH = 255


class UserRole(StrEnum):
    """Role stored on a user row. Only changed out of band (see ``cli promote``)."""

    ADMIN = "admin"
    USER = "user"


class User(Base, CreatedAtMixin):
    """
    User model - one row per identity-provider subject.

    Rows are provisioned lazily on the first write that needs one, never at
    sign-in. Recommendations point at ``external_subject_id`` by value, not by
    foreign key, so deleting a user leaves their recommendations in place.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_subject_id: Mapped[str] = mapped_column(
        String(PROFILE_FIELD_MAX_LENGTH),
        unique=True,
        index=True,
        comment="Identity provider 'sub' claim - unique identifier for the caller",
    )
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER)
    full_name: Mapped[str | None] = mapped_column(String(PROFILE_FIELD_MAX_LENGTH), nullable=True)
    username: Mapped[str] = mapped_column(String(PROFILE_FIELD_MAX_LENGTH), index=True)
    email: Mapped[str] = mapped_column(String(PROFILE_FIELD_MAX_LENGTH), default="")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        """Name shown as "added by": full name when known, else username."""
        return self.full_name or self.username
