# backend/lexvault/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import models
from .api import auth, clients, files, users
from .config import settings
from .database import SessionLocal, engine
from .exceptions import LexVaultError
from .models.user import User, UserRole
from .services.security import hash_password
from .utils.logging import api_logger, db_logger

# Create all tables on startup
models.Base.metadata.create_all(bind=engine)


def bootstrap_admin(db: Session) -> User | None:
    """Create the configured admin account when no user exists yet"""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return None
    if db.query(User).first():
        return None

    admin = User(
        email=settings.ADMIN_EMAIL.lower(),
        password=hash_password(settings.ADMIN_PASSWORD),
        full_name=settings.ADMIN_FULL_NAME,
        role=UserRole.ADMIN
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    db_logger.info("Created bootstrap admin account", extra={"user_id": admin.id, "email": admin.email})
    return admin


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        bootstrap_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(title="LexVault API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(clients.router)
app.include_router(files.router)


@app.exception_handler(LexVaultError)
async def lexvault_error_handler(request: Request, exc: LexVaultError):
    log = api_logger.error if exc.status_code >= 500 else api_logger.warning
    log(exc.message, extra={
        "path": request.url.path,
        "error_type": type(exc).__name__,
        "target": str(exc.path) if exc.path else None
    })
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/api/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
