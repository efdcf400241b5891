# endpoints/api_files.py
import logging
import time
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from config import ALLOWED_UPLOAD_MIME_TYPES, MAX_UPLOAD_SIZE_BYTES, MAX_UPLOAD_SIZE_LABEL, Settings
from containers import Container
from errors import ChatError
from repositories.file_repo import FileRepository
from services.auth_service import SessionUser
from services.file_storage import FileStorage
from .utils import get_current_user, require_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files")


def _validation_errors(size: int, content_type: Optional[str]) -> list:
    errors = []
    if size > MAX_UPLOAD_SIZE_BYTES:
        errors.append(f"File size must be <= {MAX_UPLOAD_SIZE_LABEL}")
    if content_type not in ALLOWED_UPLOAD_MIME_TYPES:
        errors.append(f"Unsupported file type. Allowed: {', '.join(ALLOWED_UPLOAD_MIME_TYPES)}")
    return errors


@router.post("/upload")
@inject
async def upload_file(
        file: Optional[UploadFile] = File(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        settings: Settings = Depends(Provide[Container.settings]),
        storage: FileStorage = Depends(Provide[Container.file_storage]),
        fr: FileRepository = Depends(Provide[Container.file_repo]),
):
    user = require_user(user, "upload")
    if not settings.flags.upload_files:
        raise ChatError("forbidden:feature", "File uploads disabled.")
    if file is None:
        return JSONResponse({"error": "No file uploaded", "code": "no_file"}, status_code=400)

    data = await file.read()
    errors = _validation_errors(len(data), file.content_type)
    if errors:
        return JSONResponse({"error": ", ".join(errors), "code": "validation_failed"}, status_code=400)

    extension = file.content_type.split("/")[1] or "bin"
    filename = file.filename or f"upload-{int(time.time() * 1000)}.{extension}"
    try:
        storage_id = await storage.store(data)
        record = await fr.save_file(storage_id, filename, file.content_type, len(data), user.id)
    except OSError as e:
        log.error("Upload failed for user %s: %s", user.id, e)
        return JSONResponse({"error": "Upload failed", "code": "upload_failed"}, status_code=500)

    return {
        "storageId": storage_id,
        "fileId": record.id,
        "url": storage.signed_url(storage_id),
        "size": len(data),
        "type": file.content_type,
        "name": filename,
        "pathname": filename,
        "contentType": file.content_type,
        "maxSize": MAX_UPLOAD_SIZE_BYTES,
        "allowed": list(ALLOWED_UPLOAD_MIME_TYPES),
    }


@router.get("/{storage_id}")
@inject
async def get_file(
        storage_id: str,
        expires: Optional[int] = Query(None),
        signature: Optional[str] = Query(None),
        storage: FileStorage = Depends(Provide[Container.file_storage]),
        fr: FileRepository = Depends(Provide[Container.file_repo]),
):
    if not storage.verify(storage_id, expires, signature):
        raise ChatError("forbidden:api", "Invalid or expired file URL.")
    record = await fr.get_by_storage_id(storage_id)
    path = storage.path_for(storage_id)
    if record is None or not path.is_file():
        raise HTTPException(status_code=404, detail="file not found")
    return FileResponse(path, media_type=record.type, filename=record.name)
