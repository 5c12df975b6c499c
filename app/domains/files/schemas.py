from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
import uuid


class UploadedFileResponse(BaseModel):
    uuid: uuid.UUID
    owner_id: uuid.UUID
    file_name: str
    file_type: Optional[str] = None
    size_bytes: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
