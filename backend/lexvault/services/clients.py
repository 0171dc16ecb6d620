# backend/lexvault/services/clients.py
import re
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import InvalidInputError, NotFoundError, StorageIOError
from ..models.client import Client
from ..utils.logging import service_logger

UNSAFE_FOLDER_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def client_folder_name(name: str, created: datetime) -> str:
    """`<name>_<YYYYMMDDHHMMSS>` with characters unusable in a folder name replaced"""
    safe_name = UNSAFE_FOLDER_CHARS.sub("_", name.strip()).strip(". ") or "client"
    return f"{safe_name}_{created.strftime('%Y%m%d%H%M%S')}"


class ClientService:
    """Client records and their folder trees"""

    def __init__(self, clients_path: Optional[Path] = None, subfolders: Optional[List[str]] = None):
        self._clients_path = clients_path
        self._subfolders = subfolders

    @property
    def clients_path(self) -> Path:
        return Path(self._clients_path or settings.CLIENTS_PATH).absolute()

    @property
    def subfolders(self) -> List[str]:
        return list(self._subfolders or settings.CLIENT_SUBFOLDERS)

    def create_folder_tree(self, name: str) -> Path:
        """Create the client root with all standard sub-folders.

        The tree is built in a staging directory and moved into place in one
        rename, so the root never exists without its sub-folders.
        """
        base = self.clients_path
        base.mkdir(parents=True, exist_ok=True)

        folder_name = client_folder_name(name, datetime.now(timezone.utc))
        target = base / folder_name
        counter = 2
        while target.exists():
            target = base / f"{folder_name}_{counter}"
            counter += 1

        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=base))
        try:
            for sub in self.subfolders:
                (staging / sub).mkdir(parents=True, exist_ok=True)
            staging.rename(target)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            service_logger.error("Failed to create client folders", extra={
                "target": str(target),
                "error": str(e)
            })
            raise StorageIOError(f"Failed to create client folder: {e.strerror or e}", path=str(target)) from e

        service_logger.info("Created client folder tree", extra={
            "folder_path": str(target),
            "subfolders": self.subfolders
        })
        return target

    def create_client(
            self,
            db: Session,
            name: str,
            contact_person: Optional[str] = None,
            contact_email: Optional[str] = None,
            contact_phone: Optional[str] = None,
            notes: Optional[str] = None
    ) -> Client:
        if not name or not name.strip():
            raise InvalidInputError("Client name is required")

        folder_path = self.create_folder_tree(name)
        client = Client(
            name=name.strip(),
            contact_person=contact_person or None,
            contact_email=contact_email or None,
            contact_phone=contact_phone or None,
            folder_path=str(folder_path),
            notes=notes or None
        )
        try:
            db.add(client)
            db.commit()
            db.refresh(client)
        except Exception:
            db.rollback()
            shutil.rmtree(folder_path, ignore_errors=True)
            raise

        return client

    @staticmethod
    def list_clients(db: Session) -> List[Client]:
        return db.query(Client).order_by(Client.created_at.desc(), Client.id.desc()).all()

    @staticmethod
    def get_client(db: Session, client_id: int) -> Client:
        client = db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise NotFoundError("Client not found")
        return client

    def get_client_root_path(self, db: Session, client_id: int) -> Path:
        return Path(self.get_client(db, client_id).folder_path)


client_service = ClientService()
