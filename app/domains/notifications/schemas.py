from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
import uuid

from app.domains.notifications.entities import NotificationKind


class NotificationResponse(BaseModel):
    uuid: uuid.UUID
    kind: NotificationKind
    message: str
    report_id: Optional[uuid.UUID] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
