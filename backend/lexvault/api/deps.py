# backend/lexvault/api/deps.py
from functools import lru_cache
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..models.user import User, UserRole
from ..services.scan import scan_converter
from ..services.security import TokenError, decode_token
from ..services.storage import FileStorage
from ..utils.logging import api_logger

bearer_scheme = HTTPBearer(auto_error=False)

ALL_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.USER)


@lru_cache()
def get_storage() -> FileStorage:
    """Storage backend for the file routes; tests override this dependency"""
    return FileStorage(converter=scan_converter, scan_base_name=settings.SCAN_BASE_NAME)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def get_current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        db: Session = Depends(get_db)
) -> User:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except TokenError as e:
        api_logger.warning("Rejected bearer token", extra={"reason": str(e)})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    user = db.query(User).filter(User.id == payload.get("id")).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory: the current user must hold one of `roles`"""
    allowed = {UserRole(role) for role in roles}

    async def checker(user: User = Depends(get_current_user)) -> User:
        if UserRole(user.role) not in allowed:
            api_logger.warning("Access denied", extra={
                "user_id": user.id,
                "role": UserRole(user.role).value,
                "allowed_roles": sorted(r.value for r in allowed)
            })
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return checker
