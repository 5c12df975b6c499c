from app.db.models.user import User
from app.db.models.file import UploadedFile
from app.db.models.report import Report, ReportVersion
from app.db.models.notification import Notification

__all__ = [
    "User",
    "UploadedFile",
    "Report",
    "ReportVersion",
    "Notification"
]
