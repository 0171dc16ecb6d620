# backend/lexvault/api/clients.py
import time
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User, UserRole
from ..schemas.client import Client as ClientSchema, ClientCreate, ClientCreated
from ..services.audit import audit_service
from ..services.clients import client_service
from ..utils.logging import api_logger
from .deps import ALL_ROLES, client_ip, require_roles

router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.post("", response_model=ClientCreated)
async def create_client(
        client: ClientCreate,
        request: Request,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER))
):
    api_logger.info("Creating new client", extra={"client_name": client.name})

    start_time = time.time()
    db_client = client_service.create_client(
        db,
        name=client.name,
        contact_person=client.contact_person,
        contact_email=client.contact_email,
        contact_phone=client.contact_phone,
        notes=client.notes
    )

    audit_service.record(
        db, current_user.id, "CREATE_CLIENT", "client", db_client.id,
        {"name": db_client.name, "folder_path": db_client.folder_path}, client_ip(request)
    )

    api_logger.info("Client created successfully", extra={
        "client_id": db_client.id,
        "folder_path": db_client.folder_path,
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return ClientCreated(
        message="Client created successfully",
        client=ClientSchema.model_validate(db_client)
    )


@router.get("", response_model=List[ClientSchema])
async def list_clients(db: Session = Depends(get_db), current_user: User = Depends(require_roles(*ALL_ROLES))):
    clients = client_service.list_clients(db)
    api_logger.info(f"Found {len(clients)} clients")
    return clients


@router.get("/{client_id}", response_model=ClientSchema)
async def get_client(
        client_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_roles(*ALL_ROLES))
):
    return client_service.get_client(db, client_id)
