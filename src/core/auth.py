"""
Bearer-token authentication against the identity provider.

Tokens are validated locally with the issuer's JWKS. The result is an
``Identity`` (or None for anonymous callers) that routers pass explicitly into
the service layer; services decide whether an identity is required.
"""
import logging
from functools import lru_cache
from typing import Any

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from core.config import Settings, get_settings
from schemas.identity import Identity
from services.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

JWKS_CACHE_SECONDS = 3600


@lru_cache
def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """One cached JWKS client per issuer URL."""
    logger.info("jwks_client_created", extra={"jwks_url": jwks_url})
    return PyJWKClient(jwks_url, cache_keys=True, lifespan=JWKS_CACHE_SECONDS)


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Validate a JWT and return its claims.

    Raises:
        UnauthenticatedError: The token is expired, malformed or not signed by
            the configured issuer.
    """
    try:
        signing_key = get_jwks_client(settings.jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=settings.auth_algorithms,
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            options={"require": ["exp", "iss", "sub", "aud"]},
        )
    except jwt.ExpiredSignatureError as e:
        logger.warning("jwt_expired")
        raise UnauthenticatedError("Token expired") from e
    except jwt.PyJWTError as e:
        logger.warning("jwt_invalid", extra={"error": str(e)})
        raise UnauthenticatedError("Invalid token") from e


def dev_identity(settings: Settings) -> Identity:
    """Fixed identity used when ``dev_mode`` is on and no token is sent."""
    return Identity(
        subject=settings.dev_subject_id,
        name="Local Developer",
        username="dev",
        email="dev@localhost",
    )


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Identity | None:
    """
    FastAPI dependency resolving the caller's identity.

    Returns None when no Authorization header is sent (anonymous caller).
    A header carrying a bad token is rejected rather than downgraded to
    anonymous, so clients notice expired sessions.
    """
    if credentials is None:
        if settings.dev_mode:
            return dev_identity(settings)
        return None
    claims = decode_token(credentials.credentials, settings)
    return Identity.from_claims(claims)
