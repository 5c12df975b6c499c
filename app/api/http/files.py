from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.api.dependencies import get_artifact_store
from app.core.auth import get_current_user
from app.core.db import get_db
from app.domains.files.schemas import UploadedFileResponse
from app.domains.files.services import FileService
from app.domains.identity.entities import User
from app.domains.reports.exceptions import UnsupportedFormatError
from app.infrastructure.storage import ArtifactStore

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", response_model=UploadedFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    store: ArtifactStore = Depends(get_artifact_store),
    db: AsyncSession = Depends(get_db)
):
    """Загрузка файла с результатами тестов"""
    payload = await file.read()
    try:
        return await FileService(db, store).upload(current_user.uuid, file.filename or "", payload)
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=List[UploadedFileResponse])
async def list_files(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    store: ArtifactStore = Depends(get_artifact_store),
    db: AsyncSession = Depends(get_db)
):
    offset = (page - 1) * per_page
    return await FileService(db, store).list_files(current_user.uuid, limit=per_page, offset=offset)
