"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str

    # Development mode - bypasses token validation and uses a fixed identity
    dev_mode: bool = False
    dev_subject_id: str = "dev|local-user"

    # Identity provider (OIDC issuer whose JWTs we accept)
    auth_issuer: str = "http://localhost:8080"
    auth_audience: str = "recommendations-api"
    auth_algorithms: Annotated[list[str], NoDecode] = ["RS256"]

    # Redis (rate limiting); the app runs without it in degraded mode
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True
    rate_limit_writes_per_minute: int = 30

    cors_origins: Annotated[list[str], NoDecode] = []

    log_level: str = "INFO"

    @field_validator("cors_origins", "auth_algorithms", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Accept either a list or a comma-separated string."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint of the configured issuer."""
        return f"{self.auth_issuer.rstrip('/')}/.well-known/jwks.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
