# backend/lexvault/config.py
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./lexvault.db"  # Default if not in .env

    # Storage Paths
    STORAGE_ROOT: Path = Path("storage")
    CLIENTS_PATH: Path | None = None  # Will be set based on STORAGE_ROOT
    LOG_PATH: Path | None = None  # Will be set based on STORAGE_ROOT

    # Client folder layout
    CLIENT_SUBFOLDERS: List[str] = [
        "Case Documents",
        "Pleadings",
        "Evidence",
        "Court Filings",
        "Correspondence",
    ]

    # Uploads
    SCAN_BASE_NAME: str = "ScannedDocument.pdf"
    MAX_UPLOAD_FILES: int = 50
    MAX_UPLOAD_BYTES: int = 60 * 1024 * 1024

    # Auth
    JWT_SECRET: str = "change-me-in-production-use-a-long-random-value"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_HOURS: int = 24
    BCRYPT_ROUNDS: int = 10

    # Bootstrap admin, created only when the users table is empty
    ADMIN_EMAIL: str | None = None
    ADMIN_PASSWORD: str | None = None
    ADMIN_FULL_NAME: str = "Administrator"

    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def model_post_init(self, __context) -> None:
        """Post initialization hook to set derived paths"""
        if isinstance(self.STORAGE_ROOT, str):
            self.STORAGE_ROOT = Path(self.STORAGE_ROOT)

        # Set derived paths if not explicitly provided
        self.CLIENTS_PATH = Path(self.CLIENTS_PATH) if self.CLIENTS_PATH else self.STORAGE_ROOT / "Clients"
        self.LOG_PATH = Path(self.LOG_PATH) if self.LOG_PATH else self.STORAGE_ROOT / "logs"

        self.create_storage_dirs()

    def create_storage_dirs(self) -> None:
        """Create necessary storage directories if they don't exist"""
        for path in [self.STORAGE_ROOT, self.CLIENTS_PATH, self.LOG_PATH]:
            path.mkdir(parents=True, exist_ok=True)


settings = Settings()
