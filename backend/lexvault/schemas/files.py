# backend/lexvault/schemas/files.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseSchema, CamelSchema


class FolderList(BaseModel):
    folders: List[str] = []


class FileEntry(BaseSchema):
    name: str
    size: int
    modified: Optional[datetime] = None


class FileList(BaseModel):
    files: List[FileEntry] = []


class SearchHit(FileEntry):
    folder: str


class SearchResults(BaseModel):
    results: List[SearchHit] = []


class UploadResult(CamelSchema):
    message: str = "Uploaded"
    stored_as: str


class ScanUploadResult(CamelSchema):
    message: str = "Scans converted and uploaded"
    pdf: str
    originals: List[str] = []


class RenameRequest(CamelSchema):
    folder: str = Field(min_length=1)
    old_name: str = Field(min_length=1)
    new_name: str = Field(min_length=1)


class RenameResult(CamelSchema):
    message: str = "Renamed"
    final_name: str
