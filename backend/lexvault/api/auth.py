# backend/lexvault/api/auth.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.auth import LoginRequest, LoginResponse
from ..schemas.user import User as UserSchema
from ..services.audit import audit_service
from ..services.security import create_token, verify_password
from ..utils.logging import api_logger
from .deps import client_ip

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = credentials.email.lower()
    api_logger.info("Login attempt", extra={"email": email})

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(credentials.password, user.password):
        api_logger.warning("Login failed", extra={"email": email})
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_token({
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
    })

    audit_service.record(
        db, user.id, "LOGIN", "user", user.id,
        {"email": user.email}, client_ip(request)
    )

    api_logger.info("Login successful", extra={"user_id": user.id, "role": user.role.value})
    return LoginResponse(token=token, user=UserSchema.model_validate(user))
