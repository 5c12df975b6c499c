from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Dict
import uuid
from datetime import datetime

from app.domains.reports.entities import ReportStatus


class ReportGenerateRequest(BaseModel):
    """Запрос первой генерации отчета"""
    file_id: uuid.UUID
    title: Optional[str] = Field(None, max_length=200)
    prompt: Optional[str] = Field(None, max_length=5000)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip() if v else v


class ReportUpdateRequest(BaseModel):
    """Изменение отчета: только заголовок или повторная генерация"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    prompt: Optional[str] = Field(None, max_length=5000)
    file_id: Optional[uuid.UUID] = None
    previous_version_id: Optional[uuid.UUID] = None

    @property
    def requests_generation(self) -> bool:
        return bool(self.prompt) or self.file_id is not None


class SubmissionResponse(BaseModel):
    """Подтверждение приема запроса на генерацию"""
    report_id: uuid.UUID
    status: ReportStatus
    poll_url: str


class ReportStatusResponse(BaseModel):
    report_id: uuid.UUID
    status: ReportStatus
    content: Optional[str] = None
    error_detail: Optional[str] = None
    duration_ms: Optional[int] = None
    updated_at: datetime


class ReportResponse(BaseModel):
    """Схема для ответа с данными отчета"""
    uuid: uuid.UUID
    file_id: uuid.UUID
    generated_by: uuid.UUID
    title: str
    status: ReportStatus
    prompt: Optional[str] = None
    content: Optional[str] = None
    error_detail: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportListResponse(BaseModel):
    reports: List[ReportResponse]
    page: int
    per_page: int


class ReportVersionResponse(BaseModel):
    """Схема для ответа с данными версии отчета"""
    uuid: uuid.UUID
    report_id: uuid.UUID
    version_number: int
    prompt: Optional[str] = None
    content: str
    duration_ms: Optional[int] = None
    created_by: uuid.UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportDiffResponse(BaseModel):
    report_id: uuid.UUID
    from_version: int
    to_version: int
    diff: str


class ReportSectionsResponse(BaseModel):
    report_id: uuid.UUID
    sections: Dict[str, str]
