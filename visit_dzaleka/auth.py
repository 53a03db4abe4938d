import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

STAFF_ROLES = ("admin", "coordinator")


def _resolve_user(token: str, db: Session) -> User:
    """Decode a bearer token and load the active user it refers to"""
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        logger.error(f"❌ Token subject is not a user id: {payload.get('sub')!r}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Token refers to missing user {user_id}")
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        logger.warning(f"⚠️ Deactivated user {user.email} attempted access")
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer access token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    user = _resolve_user(credentials.credentials, db)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Current user for public endpoints that behave differently when signed in"""
    if not credentials:
        return None
    try:
        return _resolve_user(credentials.credentials, db)
    except HTTPException:
        return None


def require_role(*roles: str):
    """
    Create a dependency that only lets users with one of the given roles through

    Example usage:
        @router.get("/admin/transactions")
        async def list_transactions(user: User = Depends(require_role("admin"))):
            ...
    """

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.email} ({user.role}) denied; requires {', '.join(roles)}")
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return role_checker


def is_staff(user: Optional[User]) -> bool:
    return bool(user) and user.role in STAFF_ROLES
