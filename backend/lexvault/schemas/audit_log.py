# backend/lexvault/schemas/audit_log.py
from typing import Any, Optional

from .base import BaseSchema, TimestampMixin


class AuditLog(BaseSchema, TimestampMixin):
    id: int
    user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    details: Optional[Any] = None
    ip_address: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
