# backend/lexvault/schemas/auth.py
from pydantic import BaseModel, EmailStr, Field

from .user import User


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str
    user: User
