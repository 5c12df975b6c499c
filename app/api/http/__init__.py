from app.api.http.auth import router as auth_router
from app.api.http.files import router as files_router
from app.api.http.reports import router as reports_router
from app.api.http.notifications import router as notifications_router

__all__ = [
    "auth_router",
    "files_router",
    "reports_router",
    "notifications_router"
]
