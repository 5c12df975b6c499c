from app.db.repositories.user_repository import UserRepository
from app.db.repositories.file_repository import UploadedFileRepository
from app.db.repositories.report_repository import ReportRepository, ReportVersionRepository
from app.db.repositories.notification_repository import NotificationRepository

__all__ = [
    "UserRepository",
    "UploadedFileRepository",
    "ReportRepository",
    "ReportVersionRepository",
    "NotificationRepository"
]
