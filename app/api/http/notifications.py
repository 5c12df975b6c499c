from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.auth import get_current_user
from app.core.db import get_db
from app.domains.identity.entities import User
from app.domains.notifications.schemas import NotificationResponse
from app.domains.notifications.services import NotificationInboxService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Уведомления текущего пользователя, новые первыми"""
    offset = (page - 1) * per_page
    return await NotificationInboxService(db).list_notifications(
        current_user.uuid, unread_only=unread_only, limit=per_page, offset=offset
    )


@router.put("/{notification_uuid}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notification = await NotificationInboxService(db).mark_read(notification_uuid, current_user.uuid)

    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    return notification


@router.delete("/{notification_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    deleted = await NotificationInboxService(db).delete(notification_uuid, current_user.uuid)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
