from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db
from storefront.core.errors import InvalidToken
from storefront.core.security import verify_access_token
from storefront.models.user import Role, User
from storefront.services.auth import AuthService

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(request: Request) -> Optional[str]:
    """Raw token from `Authorization: Bearer <token>`, None when absent or malformed."""
    header = request.headers.get("authorization") or ""
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the user behind the bearer token.

    The token must verify, must not be on the revocation list, and must
    belong to an active user; anything else is a 401.
    """
    if not credentials or credentials.scheme != "Bearer":
        raise _unauthorized("Unauthorized")

    token = credentials.credentials
    try:
        payload = verify_access_token(token)
    except InvalidToken:
        raise _unauthorized("Invalid token")

    auth_service = AuthService(db)
    if await auth_service.is_access_token_revoked(token):
        raise _unauthorized("Invalid token")

    user = await auth_service.get_user_by_id(payload["userId"])
    if user is None or not user.is_active:
        raise _unauthorized("Invalid token")
    return user


def require_roles(*roles: Role) -> Callable:
    """Dependency factory granting access only to the given roles."""
    allowed = frozenset(roles)

    async def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user

    return _check
