import enum
import uuid
from datetime import datetime, timezone
from typing import Optional


class NotificationKind(str, enum.Enum):
    REPORT_IN_PROGRESS = "report_in_progress"
    REPORT_COMPLETED = "report_completed"
    REPORT_FAILED = "report_failed"


class Notification:
    """Сущность уведомления пользователя о ходе генерации"""

    def __init__(
        self,
        uuid: uuid.UUID,
        user_id: uuid.UUID,
        kind: NotificationKind,
        message: str,
        report_id: Optional[uuid.UUID] = None,
        is_read: bool = False,
        is_deleted: bool = False,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.user_id = user_id
        self.kind = kind
        self.message = message
        self.report_id = report_id
        self.is_read = is_read
        self.is_deleted = is_deleted
        self.created_at = created_at or datetime.now(timezone.utc)

    def mark_read(self) -> None:
        self.is_read = True

    def to_event(self, **metadata) -> dict:
        """Сообщение для live-канала"""
        return {
            "type": "notification",
            "notification_id": str(self.uuid),
            "kind": self.kind.value,
            "message": self.message,
            "report_id": str(self.report_id) if self.report_id else None,
            "created_at": self.created_at.isoformat(),
            **metadata
        }

    @classmethod
    def create_notification(
        cls,
        user_id: uuid.UUID,
        kind: NotificationKind,
        message: str,
        report_id: Optional[uuid.UUID] = None
    ) -> "Notification":
        return cls(
            uuid=uuid.uuid4(),
            user_id=user_id,
            kind=kind,
            message=message,
            report_id=report_id
        )

    def __repr__(self) -> str:
        return f"Notification(uuid={self.uuid}, user_id={self.user_id}, kind={self.kind.value})"
