import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.repositories.notification_repository import NotificationRepository
from app.domains.notifications.entities import Notification, NotificationKind

logger = logging.getLogger(__name__)


class ChannelPublisher(Protocol):
    """Live-канал доставки событий пользователю"""

    async def publish(self, user_id: uuid.UUID, event: Dict[str, Any]) -> None:
        ...


class NotificationService:
    """Сохранение уведомлений и доставка их по live-каналу"""

    def __init__(self, session_factory: async_sessionmaker, publisher: ChannelPublisher):
        self.session_factory = session_factory
        self.publisher = publisher

    async def send(
        self,
        user_id: uuid.UUID,
        kind: NotificationKind,
        message: str,
        report_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Уведомление сохраняется всегда; доставка по каналу best-effort"""
        async with self.session_factory() as session:
            notification = await NotificationRepository(session).create(
                Notification.create_notification(user_id, kind, message, report_id)
            )
            await session.commit()

        try:
            await self.publisher.publish(user_id, notification.to_event(**(metadata or {})))
        except Exception as e:
            logger.warning(f"Live delivery of notification {notification.uuid} to user {user_id} failed: {e}")

        logger.info(f"Notification {kind.value} stored for user {user_id}")
        return notification

    async def report_in_progress(self, user_id: uuid.UUID, report_id: uuid.UUID, title: str) -> Notification:
        return await self.send(
            user_id,
            NotificationKind.REPORT_IN_PROGRESS,
            f'Your report "{title}" is being generated...',
            report_id=report_id,
            metadata={"title": title}
        )

    async def report_completed(self, user_id: uuid.UUID, report_id: uuid.UUID, title: str) -> Notification:
        return await self.send(
            user_id,
            NotificationKind.REPORT_COMPLETED,
            f'Your report "{title}" has been generated successfully.',
            report_id=report_id,
            metadata={"title": title}
        )

    async def report_failed(
        self,
        user_id: uuid.UUID,
        report_id: uuid.UUID,
        title: str,
        error: str
    ) -> Notification:
        return await self.send(
            user_id,
            NotificationKind.REPORT_FAILED,
            f'Error generating report "{title}": {error}',
            report_id=report_id,
            metadata={"title": title, "error": error}
        )


class NotificationInboxService:
    """Чтение и отметка уведомлений пользователем"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.notification_repository = NotificationRepository(session)

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 100,
        offset: int = 0
    ) -> List[Notification]:
        return await self.notification_repository.get_by_user(user_id, unread_only, limit, offset)

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Notification]:
        notification = await self.notification_repository.get_by_uuid(notification_id)
        if not notification or notification.user_id != user_id:
            return None

        notification.mark_read()
        await self.notification_repository.update(notification)
        await self.session.commit()
        return notification

    async def delete(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        notification = await self.notification_repository.get_by_uuid(notification_id)
        if not notification or notification.user_id != user_id:
            return False

        notification.is_deleted = True
        await self.notification_repository.update(notification)
        await self.session.commit()
        return True
