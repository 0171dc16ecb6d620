# backend/lexvault/api/__init__.py
from .auth import router as auth_router
from .users import router as users_router
from .clients import router as clients_router
from .files import router as files_router

__all__ = ["auth_router", "users_router", "clients_router", "files_router"]
