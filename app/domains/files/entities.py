import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Optional


class UploadedFile:
    """Метаданные загруженного артефакта с результатами тестов"""

    def __init__(
        self,
        uuid: uuid.UUID,
        owner_id: uuid.UUID,
        file_name: str,
        storage_path: str,
        size_bytes: int = 0,
        file_type: Optional[str] = None,
        is_deleted: bool = False,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.owner_id = owner_id
        self.file_name = file_name
        self.storage_path = storage_path
        self.size_bytes = size_bytes
        self.file_type = file_type
        self.is_deleted = is_deleted
        self.created_at = created_at or datetime.now(timezone.utc)

    @classmethod
    def create_file(cls, owner_id: uuid.UUID, file_name: str, storage_path: str, size_bytes: int) -> "UploadedFile":
        suffix = PurePath(file_name).suffix
        return cls(
            uuid=uuid.uuid4(),
            owner_id=owner_id,
            file_name=file_name,
            storage_path=storage_path,
            size_bytes=size_bytes,
            file_type=suffix[1:].lower() if suffix else None
        )

    def __repr__(self) -> str:
        return f"UploadedFile(uuid={self.uuid}, file_name={self.file_name})"
