import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.domains.reports.exceptions import InvalidTransitionError


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS = {
    ReportStatus.PENDING: frozenset({ReportStatus.IN_PROGRESS}),
    ReportStatus.IN_PROGRESS: frozenset({ReportStatus.COMPLETED, ReportStatus.FAILED}),
    ReportStatus.COMPLETED: frozenset({ReportStatus.PENDING}),
    ReportStatus.FAILED: frozenset({ReportStatus.PENDING}),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Report:
    """Сущность отчета: один логический документ и его жизненный цикл генерации"""

    def __init__(
        self,
        uuid: uuid.UUID,
        file_id: uuid.UUID,
        generated_by: uuid.UUID,
        title: str,
        status: ReportStatus = ReportStatus.PENDING,
        prompt: Optional[str] = None,
        content: Optional[str] = None,
        error_detail: Optional[str] = None,
        duration_ms: Optional[int] = None,
        is_deleted: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.file_id = file_id
        self.generated_by = generated_by
        self.title = title
        self.status = status
        self.prompt = prompt
        self.content = content
        self.error_detail = error_detail
        self.duration_ms = duration_ms
        self.is_deleted = is_deleted
        self.created_at = created_at or _now()
        self.updated_at = updated_at or _now()

    @property
    def is_terminal(self) -> bool:
        return self.status in (ReportStatus.COMPLETED, ReportStatus.FAILED)

    def _move_to(self, target: ReportStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        self.status = target
        self.updated_at = _now()

    def start(self) -> None:
        """Фоновая задача взяла отчет в работу"""
        self._move_to(ReportStatus.IN_PROGRESS)

    def complete(self, content: str, duration_ms: int) -> None:
        self._move_to(ReportStatus.COMPLETED)
        self.content = content
        self.error_detail = None
        self.duration_ms = duration_ms

    def fail(self, detail: str, duration_ms: Optional[int] = None) -> None:
        self._move_to(ReportStatus.FAILED)
        self.content = None
        self.error_detail = detail
        self.duration_ms = duration_ms

    def reopen(self, prompt: Optional[str] = None, file_id: Optional[uuid.UUID] = None) -> None:
        """Повторная генерация: завершенный отчет возвращается в pending"""
        self._move_to(ReportStatus.PENDING)
        self.content = None
        self.error_detail = None
        if prompt:
            self.prompt = prompt
        if file_id:
            self.file_id = file_id

    def rename(self, new_title: str) -> None:
        self.title = new_title
        self.updated_at = _now()

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.updated_at = _now()

    @classmethod
    def create_report(
        cls,
        file_id: uuid.UUID,
        generated_by: uuid.UUID,
        title: Optional[str] = None,
        prompt: Optional[str] = None
    ) -> "Report":
        """Создание нового отчета в состоянии pending"""
        created_at = _now()
        return cls(
            uuid=uuid.uuid4(),
            file_id=file_id,
            generated_by=generated_by,
            title=title or f"Report generated {created_at.isoformat(timespec='seconds')}",
            prompt=prompt,
            created_at=created_at,
            updated_at=created_at
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Report):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Report(uuid={self.uuid}, title={self.title}, status={self.status.value})"


class ReportVersion:
    """Неизменяемый снимок успешного результата генерации"""

    def __init__(
        self,
        uuid: uuid.UUID,
        report_id: uuid.UUID,
        version_number: int,
        content: str,
        created_by: uuid.UUID,
        prompt: Optional[str] = None,
        duration_ms: Optional[int] = None,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.report_id = report_id
        self.version_number = version_number
        self.content = content
        self.created_by = created_by
        self.prompt = prompt
        self.duration_ms = duration_ms
        self.created_at = created_at or _now()

    @classmethod
    def create_version(
        cls,
        report_id: uuid.UUID,
        version_number: int,
        content: str,
        created_by: uuid.UUID,
        prompt: Optional[str] = None,
        duration_ms: Optional[int] = None
    ) -> "ReportVersion":
        return cls(
            uuid=uuid.uuid4(),
            report_id=report_id,
            version_number=version_number,
            content=content,
            created_by=created_by,
            prompt=prompt,
            duration_ms=duration_ms
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, ReportVersion):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"ReportVersion(uuid={self.uuid}, report_id={self.report_id}, version={self.version_number})"


@dataclass(frozen=True)
class GenerationTask:
    """Один фоновый прогон генерации; в БД не сохраняется"""
    report_id: uuid.UUID
    source_content: str
    prompt: Optional[str]
    requested_by: uuid.UUID
    author_name: str
    title: str
    previous_version_id: Optional[uuid.UUID] = None
    previous_content: Optional[str] = None

    @property
    def is_versioning(self) -> bool:
        return self.previous_version_id is not None
