# backend/lexvault/api/users.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User, UserRole
from ..schemas.audit_log import AuditLog as AuditLogSchema
from ..schemas.user import User as UserSchema, UserCreate, UserRoleUpdate
from ..services.audit import audit_service
from ..services.security import hash_password
from ..utils.logging import api_logger
from .deps import client_ip, require_roles

router = APIRouter(prefix="/api/users", tags=["users"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("", response_model=List[UserSchema])
async def list_users(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    api_logger.info(f"Found {len(users)} users", extra={"requested_by": current_user.id})
    return users


@router.post("", response_model=UserSchema, status_code=201)
async def create_user(
        user: UserCreate,
        request: Request,
        db: Session = Depends(get_db),
        current_user: User = Depends(admin_only)
):
    email = user.email.lower()
    api_logger.info("Creating new user", extra={"email": email, "role": user.role.value})

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    db_user = User(
        email=email,
        password=hash_password(user.password),
        full_name=user.full_name,
        role=user.role
    )
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already exists")

    audit_service.record(
        db, current_user.id, "CREATE_USER", "user", db_user.id,
        {"email": email}, client_ip(request)
    )

    api_logger.info("User created successfully", extra={"user_id": db_user.id})
    return db_user


# Declared before "/{user_id}" routes so the path is not parsed as an id
@router.get("/audit-logs", response_model=List[AuditLogSchema])
async def list_audit_logs(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    logs = audit_service.recent(db, limit=100)
    api_logger.info("Fetched audit logs", extra={"count": len(logs), "requested_by": current_user.id})
    return logs


@router.put("/{user_id}/role", response_model=UserSchema)
async def update_user_role(
        user_id: int,
        update: UserRoleUpdate,
        request: Request,
        db: Session = Depends(get_db),
        current_user: User = Depends(admin_only)
):
    api_logger.info("Updating user role", extra={"user_id": user_id, "role": update.role.value})

    db_user = db.query(User).filter(User.id == user_id).first()
    if not db_user:
        api_logger.warning("User not found for role update", extra={"user_id": user_id})
        raise HTTPException(status_code=404, detail="User not found")

    old_role = db_user.role.value
    db_user.role = update.role
    db.commit()
    db.refresh(db_user)

    audit_service.record(
        db, current_user.id, "UPDATE_ROLE", "user", user_id,
        {"old": old_role, "new": update.role.value}, client_ip(request)
    )
    return db_user


@router.delete("/{user_id}")
async def delete_user(
        user_id: int,
        request: Request,
        db: Session = Depends(get_db),
        current_user: User = Depends(admin_only)
):
    api_logger.info("Deleting user", extra={"user_id": user_id})

    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    db_user = db.query(User).filter(User.id == user_id).first()
    if not db_user:
        api_logger.warning("User not found for deletion", extra={"user_id": user_id})
        raise HTTPException(status_code=404, detail="User not found")

    try:
        db.delete(db_user)
        db.commit()
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to delete user: {str(e)}")
        raise

    audit_service.record(db, current_user.id, "DELETE_USER", "user", user_id, {}, client_ip(request))

    api_logger.info(f"Successfully deleted user {user_id}")
    return {"message": "User deleted successfully"}
