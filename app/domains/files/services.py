from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from app.db.repositories.file_repository import UploadedFileRepository
from app.domains.files.entities import UploadedFile
from app.domains.reports.exceptions import UnsupportedFormatError
from app.domains.reports.validation import is_valid_format
from app.infrastructure.storage import ArtifactStore

logger = logging.getLogger(__name__)


class FileService:
    """Загрузка артефактов с результатами тестов"""

    def __init__(self, session: AsyncSession, store: ArtifactStore):
        self.session = session
        self.store = store
        self.file_repository = UploadedFileRepository(session)

    async def upload(self, owner_id: uuid.UUID, file_name: str, payload: bytes) -> UploadedFile:
        if not is_valid_format(file_name):
            raise UnsupportedFormatError(file_name)

        storage_path = await self.store.save(file_name, payload)
        uploaded = await self.file_repository.create(
            UploadedFile.create_file(owner_id, file_name, storage_path, len(payload))
        )
        await self.session.commit()
        logger.info(f"File {uploaded.uuid} uploaded by user {owner_id}")
        return uploaded

    async def list_files(self, owner_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List[UploadedFile]:
        return await self.file_repository.get_by_owner(owner_id, limit, offset)
