from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
import uuid

from app.db.models.report import Report as ReportModel, ReportVersion as ReportVersionModel
from app.domains.reports.entities import Report, ReportVersion


class ReportRepository:
    """Репозиторий для работы с отчетами"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, report: Report) -> Report:
        """Создание нового отчета"""
        db_report = ReportModel(
            uuid=report.uuid,
            file_id=report.file_id,
            generated_by=report.generated_by,
            title=report.title,
            status=report.status,
            prompt=report.prompt,
            content=report.content,
            error_detail=report.error_detail,
            duration_ms=report.duration_ms,
            is_deleted=report.is_deleted,
            created_at=report.created_at,
            updated_at=report.updated_at
        )

        self.session.add(db_report)
        await self.session.flush()
        return self._to_domain(db_report)

    async def get_by_uuid(self, report_uuid: uuid.UUID, include_deleted: bool = False) -> Optional[Report]:
        """Получение отчета по UUID"""
        query = select(ReportModel).where(ReportModel.uuid == report_uuid)
        if not include_deleted:
            query = query.where(ReportModel.is_deleted.is_(False))

        result = await self.session.execute(query)
        db_report = result.scalar_one_or_none()
        return self._to_domain(db_report) if db_report else None

    async def get_by_owner(self, owner_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List[Report]:
        """Получение отчетов пользователя"""
        result = await self.session.execute(
            select(ReportModel)
            .where(
                ReportModel.generated_by == owner_id,
                ReportModel.is_deleted.is_(False)
            )
            .order_by(ReportModel.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(db_report) for db_report in result.scalars().all()]

    async def update(self, report: Report) -> None:
        """Сохранение полей жизненного цикла; заголовок пишет только update_title"""
        await self.session.execute(
            update(ReportModel)
            .where(ReportModel.uuid == report.uuid)
            .values(
                file_id=report.file_id,
                status=report.status,
                prompt=report.prompt,
                content=report.content,
                error_detail=report.error_detail,
                duration_ms=report.duration_ms,
                is_deleted=report.is_deleted,
                updated_at=report.updated_at
            )
        )

    async def update_title(self, report: Report) -> None:
        await self.session.execute(
            update(ReportModel)
            .where(ReportModel.uuid == report.uuid)
            .values(title=report.title, updated_at=report.updated_at)
        )

    def _to_domain(self, db_report: ReportModel) -> Report:
        """Преобразование модели БД в доменную сущность"""
        return Report(
            uuid=db_report.uuid,
            file_id=db_report.file_id,
            generated_by=db_report.generated_by,
            title=db_report.title,
            status=db_report.status,
            prompt=db_report.prompt,
            content=db_report.content,
            error_detail=db_report.error_detail,
            duration_ms=db_report.duration_ms,
            is_deleted=db_report.is_deleted,
            created_at=db_report.created_at,
            updated_at=db_report.updated_at
        )


class ReportVersionRepository:
    """Репозиторий для работы с версиями отчетов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, version: ReportVersion) -> ReportVersion:
        """Добавление версии в текущую транзакцию"""
        db_version = ReportVersionModel(
            uuid=version.uuid,
            report_id=version.report_id,
            version_number=version.version_number,
            prompt=version.prompt,
            content=version.content,
            duration_ms=version.duration_ms,
            created_by=version.created_by,
            created_at=version.created_at
        )

        self.session.add(db_version)
        await self.session.flush()
        return self._to_domain(db_version)

    async def get_by_uuid(self, version_uuid: uuid.UUID) -> Optional[ReportVersion]:
        result = await self.session.execute(
            select(ReportVersionModel).where(ReportVersionModel.uuid == version_uuid)
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def get_by_report(
        self,
        report_id: uuid.UUID,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[ReportVersion]:
        """Получение версий отчета, упорядоченных по номеру"""
        order = ReportVersionModel.version_number.desc() if descending else ReportVersionModel.version_number.asc()
        query = (
            select(ReportVersionModel)
            .where(ReportVersionModel.report_id == report_id)
            .order_by(order)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return [self._to_domain(db_version) for db_version in result.scalars().all()]

    async def get_version_by_number(self, report_id: uuid.UUID, version_number: int) -> Optional[ReportVersion]:
        result = await self.session.execute(
            select(ReportVersionModel).where(
                ReportVersionModel.report_id == report_id,
                ReportVersionModel.version_number == version_number
            )
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def get_max_version_number(self, report_id: uuid.UUID) -> Optional[int]:
        result = await self.session.execute(
            select(func.max(ReportVersionModel.version_number))
            .where(ReportVersionModel.report_id == report_id)
        )
        return result.scalar()

    async def count_by_report(self, report_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count(ReportVersionModel.uuid))
            .where(ReportVersionModel.report_id == report_id)
        )
        return result.scalar()

    def _to_domain(self, db_version: ReportVersionModel) -> ReportVersion:
        """Преобразование модели БД в доменную сущность"""
        return ReportVersion(
            uuid=db_version.uuid,
            report_id=db_version.report_id,
            version_number=db_version.version_number,
            content=db_version.content,
            created_by=db_version.created_by,
            prompt=db_version.prompt,
            duration_ms=db_version.duration_ms,
            created_at=db_version.created_at
        )
