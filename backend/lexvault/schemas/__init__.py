# backend/lexvault/schemas/__init__.py
from .auth import LoginRequest, LoginResponse
from .user import User, UserCreate, UserRoleUpdate
from .client import Client, ClientCreate, ClientCreated
from .audit_log import AuditLog
from .files import (
    FolderList, FileEntry, FileList, SearchHit, SearchResults,
    UploadResult, ScanUploadResult, RenameRequest, RenameResult
)

__all__ = [
    "LoginRequest", "LoginResponse",
    "User", "UserCreate", "UserRoleUpdate",
    "Client", "ClientCreate", "ClientCreated",
    "AuditLog",
    "FolderList", "FileEntry", "FileList", "SearchHit", "SearchResults",
    "UploadResult", "ScanUploadResult", "RenameRequest", "RenameResult"
]
