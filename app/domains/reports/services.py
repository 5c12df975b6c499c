import difflib
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.db.repositories.report_repository import ReportRepository, ReportVersionRepository
from app.domains.reports.classifier import split_sections
from app.domains.reports.entities import Report, ReportStatus, ReportVersion
from app.domains.reports.exceptions import ReportBusyError, ReportNotFoundError


class ReportService:
    """Чтение отчетов и изменения без генерации"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.report_repository = ReportRepository(session)

    async def get_report(self, report_uuid: uuid.UUID) -> Report:
        report = await self.report_repository.get_by_uuid(report_uuid)
        if not report:
            raise ReportNotFoundError(report_uuid)
        return report

    async def get_status(self, report_uuid: uuid.UUID) -> dict:
        """Текущее состояние генерации для опроса клиентом"""
        report = await self.get_report(report_uuid)
        return {
            "report_id": report.uuid,
            "status": report.status,
            "content": report.content if report.status == ReportStatus.COMPLETED else None,
            "error_detail": report.error_detail if report.status == ReportStatus.FAILED else None,
            "duration_ms": report.duration_ms,
            "updated_at": report.updated_at
        }

    async def get_user_reports(self, user_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List[Report]:
        return await self.report_repository.get_by_owner(user_id, limit, offset)

    async def update_title(self, report_uuid: uuid.UUID, title: str) -> Report:
        """Изменение только заголовка: без фоновой задачи и уведомлений"""
        report = await self.get_report(report_uuid)
        report.rename(title)
        await self.report_repository.update_title(report)
        await self.session.commit()
        return report

    async def delete_report(self, report_uuid: uuid.UUID) -> None:
        """Мягкое удаление; во время генерации запрещено"""
        report = await self.get_report(report_uuid)
        if not report.is_terminal:
            raise ReportBusyError(report_uuid)
        report.soft_delete()
        await self.report_repository.update(report)
        await self.session.commit()

    async def get_sections(self, report_uuid: uuid.UUID) -> dict:
        report = await self.get_report(report_uuid)
        return split_sections(report.content or "")


class ReportVersionService:
    """Хранилище версий: только добавление и чтение"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.version_repository = ReportVersionRepository(session)

    async def append(
        self,
        report_id: uuid.UUID,
        prompt: Optional[str],
        content: str,
        created_by: uuid.UUID,
        duration_ms: Optional[int] = None
    ) -> ReportVersion:
        """Новая версия с номером max + 1; коммит остается за вызывающим"""
        latest_number = await self.version_repository.get_max_version_number(report_id)
        version = ReportVersion.create_version(
            report_id=report_id,
            version_number=(latest_number or 0) + 1,
            content=content,
            created_by=created_by,
            prompt=prompt,
            duration_ms=duration_ms
        )
        return await self.version_repository.create(version)

    async def list_versions(
        self,
        report_id: uuid.UUID,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[ReportVersion]:
        return await self.version_repository.get_by_report(report_id, descending, limit, offset)

    async def get_version(self, version_uuid: uuid.UUID) -> Optional[ReportVersion]:
        return await self.version_repository.get_by_uuid(version_uuid)

    async def get_latest(self, report_id: uuid.UUID) -> Optional[ReportVersion]:
        versions = await self.version_repository.get_by_report(report_id, descending=True, limit=1)
        return versions[0] if versions else None

    async def get_previous(self, report_id: uuid.UUID) -> Optional[ReportVersion]:
        """Версия перед последней"""
        versions = await self.version_repository.get_by_report(report_id, descending=True, limit=2)
        return versions[1] if len(versions) == 2 else None

    async def count_versions(self, report_id: uuid.UUID) -> int:
        return await self.version_repository.count_by_report(report_id)

    async def compare_versions(
        self,
        report_id: uuid.UUID,
        from_version: int,
        to_version: int
    ) -> Optional[str]:
        """Unified diff между двумя версиями отчета"""
        from_doc = await self.version_repository.get_version_by_number(report_id, from_version)
        to_doc = await self.version_repository.get_version_by_number(report_id, to_version)

        if not from_doc or not to_doc:
            return None

        if from_doc.content == to_doc.content:
            return ""

        return "".join(difflib.unified_diff(
            from_doc.content.splitlines(keepends=True),
            to_doc.content.splitlines(keepends=True),
            fromfile=f"v{from_version}",
            tofile=f"v{to_version}"
        ))
