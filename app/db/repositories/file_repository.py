from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid

from app.db.models.file import UploadedFile as UploadedFileModel
from app.domains.files.entities import UploadedFile


class UploadedFileRepository:
    """Репозиторий метаданных загруженных файлов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, uploaded_file: UploadedFile) -> UploadedFile:
        db_file = UploadedFileModel(
            uuid=uploaded_file.uuid,
            owner_id=uploaded_file.owner_id,
            file_name=uploaded_file.file_name,
            file_type=uploaded_file.file_type,
            size_bytes=uploaded_file.size_bytes,
            storage_path=uploaded_file.storage_path,
            is_deleted=uploaded_file.is_deleted
        )

        self.session.add(db_file)
        await self.session.flush()
        return self._to_domain(db_file)

    async def get_by_uuid(self, file_uuid: uuid.UUID) -> Optional[UploadedFile]:
        """Получение неудаленного файла по UUID"""
        result = await self.session.execute(
            select(UploadedFileModel).where(
                UploadedFileModel.uuid == file_uuid,
                UploadedFileModel.is_deleted.is_(False)
            )
        )
        db_file = result.scalar_one_or_none()
        return self._to_domain(db_file) if db_file else None

    async def get_by_owner(self, owner_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List[UploadedFile]:
        result = await self.session.execute(
            select(UploadedFileModel)
            .where(
                UploadedFileModel.owner_id == owner_id,
                UploadedFileModel.is_deleted.is_(False)
            )
            .order_by(UploadedFileModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(db_file) for db_file in result.scalars().all()]

    def _to_domain(self, db_file: UploadedFileModel) -> UploadedFile:
        return UploadedFile(
            uuid=db_file.uuid,
            owner_id=db_file.owner_id,
            file_name=db_file.file_name,
            storage_path=db_file.storage_path,
            size_bytes=db_file.size_bytes,
            file_type=db_file.file_type,
            is_deleted=db_file.is_deleted,
            created_at=db_file.created_at
        )
