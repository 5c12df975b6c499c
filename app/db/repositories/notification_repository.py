from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
import uuid

from app.db.models.notification import Notification as NotificationModel
from app.domains.notifications.entities import Notification


class NotificationRepository:
    """Репозиторий уведомлений"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, notification: Notification) -> Notification:
        db_notification = NotificationModel(
            uuid=notification.uuid,
            user_id=notification.user_id,
            kind=notification.kind,
            message=notification.message,
            report_id=notification.report_id,
            is_read=notification.is_read,
            is_deleted=notification.is_deleted,
            created_at=notification.created_at
        )

        self.session.add(db_notification)
        await self.session.flush()
        return self._to_domain(db_notification)

    async def get_by_uuid(self, notification_uuid: uuid.UUID) -> Optional[Notification]:
        result = await self.session.execute(
            select(NotificationModel).where(
                NotificationModel.uuid == notification_uuid,
                NotificationModel.is_deleted.is_(False)
            )
        )
        db_notification = result.scalar_one_or_none()
        return self._to_domain(db_notification) if db_notification else None

    async def get_by_user(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 100,
        offset: int = 0
    ) -> List[Notification]:
        """Уведомления пользователя, новые первыми"""
        query = select(NotificationModel).where(
            NotificationModel.user_id == user_id,
            NotificationModel.is_deleted.is_(False)
        )
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))

        result = await self.session.execute(
            query.order_by(NotificationModel.created_at.desc()).offset(offset).limit(limit)
        )
        return [self._to_domain(item) for item in result.scalars().all()]

    async def get_by_report(self, report_id: uuid.UUID) -> List[Notification]:
        """Уведомления одного отчета в порядке создания"""
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.report_id == report_id)
            .order_by(NotificationModel.created_at.asc())
        )
        return [self._to_domain(item) for item in result.scalars().all()]

    async def update(self, notification: Notification) -> None:
        await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.uuid == notification.uuid)
            .values(is_read=notification.is_read, is_deleted=notification.is_deleted)
        )

    def _to_domain(self, db_notification: NotificationModel) -> Notification:
        return Notification(
            uuid=db_notification.uuid,
            user_id=db_notification.user_id,
            kind=db_notification.kind,
            message=db_notification.message,
            report_id=db_notification.report_id,
            is_read=db_notification.is_read,
            is_deleted=db_notification.is_deleted,
            created_at=db_notification.created_at
        )
