from app.domains.notifications.entities import Notification, NotificationKind
from app.domains.notifications.schemas import NotificationResponse

__all__ = ["Notification", "NotificationKind", "NotificationResponse"]
