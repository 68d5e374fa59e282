"""FastAPI dependencies for authentication and authorization."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.permissions import Capability, has_capability
from app.models.profile import Profile
from app.services.auth import decode_access_token

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Extract and validate the current profile from the JWT token.

    Raises 401 if the token is invalid or the profile is unknown,
    403 if the profile is deactivated.
    """
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile_id: Optional[str] = payload.get("sub")
    try:
        profile_uuid = UUID(profile_id) if profile_id else None
    except ValueError:
        profile_uuid = None
    if profile_uuid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    profile = await db.get(Profile, profile_uuid)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return profile


def require_capability(capability: Capability):
    """Dependency factory guarding a route with one capability.

    Usage:
        @router.post("/import")
        async def import_route(user: Profile = Depends(require_capability(Capability.IMPORT_LEADS))):
            ...
    """
    async def capability_checker(current_user: Profile = Depends(get_current_user)) -> Profile:
        if not has_capability(current_user.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Missing capability: {capability.value}",
            )
        return current_user

    return capability_checker
