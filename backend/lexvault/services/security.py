# backend/lexvault/services/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from ..config import settings


class TokenError(Exception):
    """Raised when a bearer token is missing, malformed or expired"""


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_token(payload: Dict[str, Any], expires_hours: int | None = None) -> str:
    """Sign `payload` with the configured secret; adds iat/exp claims"""
    hours = expires_hours if expires_hours is not None else settings.JWT_EXPIRES_HOURS
    now = datetime.now(timezone.utc)
    claims = payload.copy()
    claims.setdefault("iat", now)
    claims.setdefault("exp", now + timedelta(hours=hours))
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except InvalidTokenError as e:
        raise TokenError("Invalid token") from e
