#app/api/files.py
from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from typing import List
import logging

from app.schemas.file import StoredFile, FileEntry, FileUrl
from app.services.storage_service import StorageService
from app.dependencies import get_current_active_user, get_storage
from app.core.settings import settings
from app.core.exceptions import StorageError, StoredFileNotFound
from app.models.user import User as DBUser

router = APIRouter(prefix="/files", tags=["Files"])
logger = logging.getLogger("ResearchTracker.FilesAPI")

@router.post("/", response_model=StoredFile, status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    storage: StorageService = Depends(get_storage),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Upload a document (achievement paper, avatar, ...) to the documents bucket.
    """
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    if size > max_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File size exceeds limit")

    try:
        return storage.upload(
            file.file,
            filename=file.filename,
            content_type=file.content_type,
            size=size,
            metadata={"user-id": str(current_user.id)},
        )
    except StorageError as e:
        logger.error(f"Upload of {file.filename} failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.get("/", response_model=List[FileEntry])
def list_files(
    prefix: str = Query(""),
    storage: StorageService = Depends(get_storage),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return storage.list_files(prefix=prefix)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.get("/{object_name}", response_model=FileUrl)
def get_file_url(
    object_name: str,
    storage: StorageService = Depends(get_storage),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Presigned download URL.
    """
    expires_in = settings.FILE_URL_EXPIRE_SECONDS
    try:
        url = storage.presigned_url(object_name, expires_in=expires_in)
    except StoredFileNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return FileUrl(url=url, expires_in=expires_in)

@router.delete("/{object_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    object_name: str,
    storage: StorageService = Depends(get_storage),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        storage.delete(object_name)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
