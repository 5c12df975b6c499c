from sqlalchemy import Column, Text, Boolean, ForeignKey, Uuid, Enum
from sqlalchemy.orm import relationship

from app.db.base import BaseModel
from app.domains.notifications.entities import NotificationKind


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.uuid"), nullable=False, index=True)
    kind = Column(
        Enum(NotificationKind, values_callable=lambda enum_cls: [item.value for item in enum_cls]),
        nullable=False
    )
    message = Column(Text, nullable=False)
    report_id = Column(Uuid(as_uuid=True), ForeignKey("reports.uuid"))
    is_read = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User")
