# backend/lexvault/schemas/user.py
import re
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import CamelSchema
from ..models.user import UserRole

PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])")


class UserBase(CamelSchema):
    email: EmailStr
    full_name: str = Field(min_length=1)
    role: UserRole


class UserCreate(UserBase):
    password: str = Field(min_length=8)

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Full name is required")
        return value

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not PASSWORD_RULE.match(value):
            raise ValueError(
                "Password must contain lower and upper case letters, a digit and one of @$!%*?&"
            )
        return value


class UserRoleUpdate(CamelSchema):
    role: UserRole


class User(UserBase):
    id: int
    # Kept snake_case in responses, as the frontend reads them that way
    created_at: Optional[datetime] = Field(default=None, serialization_alias="created_at")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updated_at")
