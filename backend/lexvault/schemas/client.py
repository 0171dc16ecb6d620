# backend/lexvault/schemas/client.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import CamelSchema


class ClientBase(CamelSchema):
    name: str = Field(min_length=1)
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    pass


class Client(ClientBase):
    id: int
    folder_path: str
    created_at: Optional[datetime] = None


class ClientCreated(CamelSchema):
    message: str
    client: Client
