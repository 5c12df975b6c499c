from app.domains.reports.entities import Report, ReportVersion, ReportStatus, GenerationTask
from app.domains.reports.schemas import (
    ReportGenerateRequest, ReportUpdateRequest, SubmissionResponse, ReportStatusResponse,
    ReportResponse, ReportListResponse, ReportVersionResponse, ReportDiffResponse,
    ReportSectionsResponse
)

__all__ = [
    "Report", "ReportVersion", "ReportStatus", "GenerationTask",
    "ReportGenerateRequest", "ReportUpdateRequest", "SubmissionResponse", "ReportStatusResponse",
    "ReportResponse", "ReportListResponse", "ReportVersionResponse", "ReportDiffResponse",
    "ReportSectionsResponse"
]
