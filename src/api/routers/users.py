"""Current-user endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import check_write_rate_limit, get_async_session, get_optional_identity
from schemas.identity import Identity
from schemas.user import EnsureUserResponse, UserResponse
from services import identity_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse | None)
async def get_current_user(
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse | None:
    """
    The caller's user record.

    Returns ``null`` both for anonymous callers and for signed-in callers who
    have not registered yet, so clients can call it before a token is ready.
    """
    user = await identity_service.get_current_user(db, identity)
    if user is None:
        return None
    return UserResponse.model_validate(user)


@router.post(
    "/me",
    response_model=EnsureUserResponse,
    dependencies=[Depends(check_write_rate_limit)],
)
async def ensure_current_user(
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_session),
) -> EnsureUserResponse:
    """
    Register the signed-in caller if needed and return their user id.

    Idempotent: repeated calls return the same id and never overwrite the
    stored profile.
    """
    user = await identity_service.resolve_user_provisioning(db, identity)
    return EnsureUserResponse(id=user.id)
