# backend/lexvault/api/files.py
import time
from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..exceptions import InvalidInputError
from ..models.user import User
from ..schemas.files import (
    FileList, FolderList, RenameRequest, RenameResult,
    ScanUploadResult, SearchResults, UploadResult
)
from ..services.audit import audit_service
from ..services.clients import client_service
from ..services.scan import ScanImage
from ..services.storage import FileStorage
from ..utils.files import read_upload_file
from ..utils.logging import api_logger
from .deps import ALL_ROLES, client_ip, get_storage, require_roles

router = APIRouter(prefix="/api/files", tags=["files"])

any_role = require_roles(*ALL_ROLES)


@router.get("/folders/{client_id}", response_model=FolderList)
async def list_folders(
        client_id: int,
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    root = client_service.get_client_root_path(db, client_id)
    folders = storage.list_folders(root)
    api_logger.debug("Listed folders", extra={"client_id": client_id, "folder_count": len(folders)})
    return FolderList(folders=folders)


@router.get("/list/{client_id}", response_model=FileList)
async def list_files(
        client_id: int,
        folder: str = Query(...),
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    root = client_service.get_client_root_path(db, client_id)
    files = storage.list_files(root, folder)
    api_logger.debug("Listed files", extra={
        "client_id": client_id,
        "folder": folder,
        "file_count": len(files)
    })
    return {"files": files}


@router.get("/search/{client_id}", response_model=SearchResults)
async def search_files(
        client_id: int,
        query: str = Query(""),
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    api_logger.info("Searching client files", extra={"client_id": client_id, "query": query})
    root = client_service.get_client_root_path(db, client_id)
    return {"results": storage.search(root, query)}


@router.post("/upload/{client_id}", response_model=UploadResult)
async def upload_file(
        client_id: int,
        request: Request,
        file: UploadFile = File(...),
        folder: str = Form(...),
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    api_logger.info("Starting file upload", extra={
        "client_id": client_id,
        "folder": folder,
        "file_name": file.filename,
        "content_type": file.content_type
    })

    start_time = time.time()
    root = client_service.get_client_root_path(db, client_id)
    data = await read_upload_file(file)
    stored_as = storage.save(root, folder, file.filename, data)

    audit_service.record(
        db, current_user.id, "UPLOAD_FILE", "client", client_id,
        {"folder": folder, "file": stored_as, "size": len(data)}, client_ip(request)
    )

    api_logger.info("File uploaded successfully", extra={
        "client_id": client_id,
        "stored_as": stored_as,
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return UploadResult(stored_as=stored_as)


@router.post("/scan-upload/{client_id}", response_model=ScanUploadResult)
async def scan_upload(
        client_id: int,
        request: Request,
        images: List[UploadFile] = File(...),
        folder: str = Form(...),
        save_originals: bool = Form(True, alias="saveOriginals"),
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    api_logger.info(
        f"Starting scan upload of {len(images)} images",
        extra={
            "client_id": client_id,
            "folder": folder,
            "save_originals": save_originals,
            "file_names": [f.filename for f in images]
        }
    )

    if len(images) > settings.MAX_UPLOAD_FILES:
        raise InvalidInputError(f"At most {settings.MAX_UPLOAD_FILES} images can be uploaded at once")

    start_time = time.time()
    root = client_service.get_client_root_path(db, client_id)
    batch = [
        ScanImage(filename=image.filename or "", data=await read_upload_file(image))
        for image in images
    ]
    result = storage.scan_upload(root, folder, batch, keep_originals=save_originals)

    audit_service.record(
        db, current_user.id, "SCAN_UPLOAD", "client", client_id,
        {"folder": folder, "pdf": result.pdf, "originals": result.originals}, client_ip(request)
    )

    api_logger.info("Scan upload completed", extra={
        "client_id": client_id,
        "pdf": result.pdf,
        "original_count": len(result.originals),
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return ScanUploadResult(pdf=result.pdf, originals=result.originals)


@router.post("/rename/{client_id}", response_model=RenameResult)
async def rename_file(
        client_id: int,
        rename: RenameRequest,
        request: Request,
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    api_logger.info("Renaming file", extra={
        "client_id": client_id,
        "folder": rename.folder,
        "old_name": rename.old_name,
        "new_name": rename.new_name
    })

    root = client_service.get_client_root_path(db, client_id)
    final_name = storage.rename(root, rename.folder, rename.old_name, rename.new_name)

    audit_service.record(
        db, current_user.id, "RENAME_FILE", "client", client_id,
        {"folder": rename.folder, "old": rename.old_name, "new": final_name}, client_ip(request)
    )
    return RenameResult(final_name=final_name)


@router.get("/download/{client_id}")
async def download_file(
        client_id: int,
        folder: str = Query(...),
        file: str = Query(...),
        db: Session = Depends(get_db),
        storage: FileStorage = Depends(get_storage),
        current_user: User = Depends(any_role)
):
    root = client_service.get_client_root_path(db, client_id)
    path = storage.open(root, folder, file)
    api_logger.info("Serving download", extra={"client_id": client_id, "folder": folder, "file_name": file})
    return FileResponse(path, filename=path.name)
