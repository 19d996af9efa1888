"""Verified caller identity passed from the auth layer into services."""
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Identity:
    """
    An authenticated caller as asserted by the identity provider.

    Built from already-verified token claims; services never see raw tokens.
    Only ``subject`` is guaranteed. The optional claims are used once, when a
    user row is first provisioned, and are never used to refresh a stored
    profile afterwards.
    """

    subject: str
    given_name: str | None = None
    family_name: str | None = None
    name: str | None = None
    username: str | None = None
    email: str | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Identity":
        """Build an identity from decoded JWT claims. Non-string claims are ignored."""

        def _claim(*keys: str) -> str | None:
            for key in keys:
                value = claims.get(key)
                if isinstance(value, str):
                    return value
            return None

        return cls(
            subject=claims["sub"],
            given_name=_claim("given_name"),
            family_name=_claim("family_name"),
            name=_claim("name"),
            username=_claim("username", "preferred_username"),
            email=_claim("email"),
        )
