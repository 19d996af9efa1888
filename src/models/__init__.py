"""SQLAlchemy models."""
from models.base import Base, CreatedAtMixin, TimestampMixin
from models.recommendation import Recommendation
from models.user import User, UserRole

__all__ = ["Base", "CreatedAtMixin", "Recommendation", "TimestampMixin", "User", "UserRole"]
