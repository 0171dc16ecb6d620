# tests/conftest.py
import io
import os
import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lexvault.api.deps import get_storage
from lexvault.config import settings
from lexvault.database import Base, get_db
from lexvault.main import app
from lexvault.models import User, UserRole
from lexvault.services.clients import ClientService
from lexvault.services.security import create_token, hash_password
from lexvault.services.storage import FileStorage

# Create test database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_PASSWORD = "Secret123!"
TEST_JWT_SECRET = "lexvault-test-signing-key-0123456789"


@pytest.fixture(scope="session")
def engine():
    """Create test database engine"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool  # Needed for SQLite in-memory database
    )
    return engine


@pytest.fixture(scope="session")
def tables(engine):
    """Create all tables in the test database"""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine, tables):
    """Creates a new database session for a test"""
    connection = engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def temp_storage_dir():
    """Create temporary storage directory for test files"""
    temp_dir = Path(tempfile.mkdtemp()).resolve()
    (temp_dir / "Clients").mkdir(parents=True, exist_ok=True)
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def override_settings(temp_storage_dir):
    """Point storage at the temp directory, make hashing cheap and pin the signing key"""
    original_root = settings.STORAGE_ROOT
    original_clients = settings.CLIENTS_PATH
    original_rounds = settings.BCRYPT_ROUNDS
    original_secret = settings.JWT_SECRET

    settings.STORAGE_ROOT = temp_storage_dir
    settings.CLIENTS_PATH = temp_storage_dir / "Clients"
    settings.BCRYPT_ROUNDS = 4
    settings.JWT_SECRET = TEST_JWT_SECRET

    yield

    settings.STORAGE_ROOT = original_root
    settings.CLIENTS_PATH = original_clients
    settings.BCRYPT_ROUNDS = original_rounds
    settings.JWT_SECRET = original_secret


@pytest.fixture
def storage():
    return FileStorage()


@pytest.fixture
def client_service(temp_storage_dir):
    return ClientService(clients_path=temp_storage_dir / "Clients")


@pytest.fixture
def client(db_session, storage):
    """Test client using the test database and temp storage"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db_session, email: str, role: UserRole, full_name: str = "Test User") -> User:
    user = User(
        email=email,
        password=hash_password(TEST_PASSWORD),
        full_name=full_name,
        role=role
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_token({"id": user.id, "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "admin@lexfirm.com", UserRole.ADMIN, "Ada Admin")


@pytest.fixture
def manager_user(db_session):
    return make_user(db_session, "manager@lexfirm.com", UserRole.MANAGER, "Max Manager")


@pytest.fixture
def regular_user(db_session):
    return make_user(db_session, "user@lexfirm.com", UserRole.USER, "Uma User")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def manager_headers(manager_user):
    return auth_headers(manager_user)


@pytest.fixture
def user_headers(regular_user):
    return auth_headers(regular_user)


@pytest.fixture
def sample_client(db_session, client_service):
    """Create a client with its standard folder tree"""
    return client_service.create_client(
        db_session,
        name="Acme Corp",
        contact_person="Jane Roe",
        contact_email="jane@acme.com"
    )


@pytest.fixture
def client_root(sample_client):
    return Path(sample_client.folder_path)


def make_image_bytes(size=(120, 80), color="white", fmt="PNG", mode="RGB") -> bytes:
    """Create an image in memory with a bit of drawing on it"""
    img = Image.new(mode, size, color=color)
    if mode in ("RGB", "L"):
        ImageDraw.Draw(img).rectangle([5, 5, size[0] // 2, size[1] // 2], outline="black")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_files():
    """Clean up test files after all tests are done"""
    yield
    for file in ["lexvault.db", "test.db"]:
        if os.path.exists(file):
            os.remove(file)


@pytest.fixture
def image_bytes():
    """Factory fixture for in-memory test images"""
    return make_image_bytes


@pytest.fixture
def headers_for():
    """Factory fixture for bearer headers of an arbitrary user"""
    return auth_headers
