# backend/lexvault/models/__init__.py
from ..database import Base
from .user import User, UserRole
from .client import Client
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Client",
    "AuditLog"
]
