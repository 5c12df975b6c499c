"""Оркестратор генерации отчетов.

Синхронная часть (submit/regenerate) проверяет входные данные, переводит
отчет в pending и передает работу супервизору. Фоновая часть (run) проходит
pending -> in_progress -> completed | failed и уведомляет пользователя.
"""
import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.db.repositories.file_repository import UploadedFileRepository
from app.db.repositories.report_repository import ReportRepository, ReportVersionRepository
from app.domains.generation.client import GenerationClient
from app.domains.generation.exceptions import GenerationError
from app.domains.generation.prompts import build_report_prompt, build_versioning_prompt
from app.domains.identity.entities import User
from app.domains.notifications.services import NotificationService
from app.domains.reports.classifier import classify_response
from app.domains.reports.entities import GenerationTask, Report, ReportStatus, ReportVersion
from app.domains.reports.exceptions import (
    DuplicateContentError, FileNotFoundInStoreError, MissingVersionReferenceError,
    ReportBusyError, ReportNotFoundError, UnsupportedFormatError, VersionNotFoundError
)
from app.domains.reports.services import ReportService, ReportVersionService
from app.domains.reports.validation import is_valid_format
from app.infrastructure.storage import ArtifactStore
from app.infrastructure.tasks import TaskAlreadyRunningError, TaskSupervisor

logger = logging.getLogger(__name__)


def decode_artifact(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


class ReportPipeline:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        generation_client: GenerationClient,
        notifier: NotificationService,
        supervisor: TaskSupervisor,
        artifact_store: ArtifactStore,
        clock: Callable[[], float] = time.monotonic
    ):
        self.session_factory = session_factory
        self.generation_client = generation_client
        self.notifier = notifier
        self.supervisor = supervisor
        self.artifact_store = artifact_store
        self.clock = clock
        self._admission_lock = asyncio.Lock()

    async def submit(
        self,
        file_id: uuid.UUID,
        requester: User,
        title: Optional[str] = None,
        prompt: Optional[str] = None
    ) -> Report:
        """Первая генерация: отчет создается в pending, работа уходит в фон"""
        async with self.session_factory() as session:
            uploaded = await UploadedFileRepository(session).get_by_uuid(file_id)
            if not uploaded:
                raise FileNotFoundInStoreError(file_id)
            if not is_valid_format(uploaded.file_name):
                raise UnsupportedFormatError(uploaded.file_name)

            source = decode_artifact(await self.artifact_store.read(uploaded.storage_path))
            report = await ReportRepository(session).create(
                Report.create_report(file_id=file_id, generated_by=requester.uuid, title=title, prompt=prompt)
            )
            await session.commit()

        logger.info(f"Report {report.uuid} accepted for user {requester.uuid}")
        self._schedule(GenerationTask(
            report_id=report.uuid,
            source_content=source,
            prompt=prompt,
            requested_by=requester.uuid,
            author_name=requester.username,
            title=report.title
        ))
        return report

    async def regenerate(
        self,
        report_id: uuid.UUID,
        requester: User,
        prompt: Optional[str] = None,
        file_id: Optional[uuid.UUID] = None,
        previous_version_id: Optional[uuid.UUID] = None,
        title: Optional[str] = None
    ) -> Report:
        """Новая версия отчета по новому файлу и/или новой инструкции.

        Новый заголовок применяется только вместе с принятым запросом.
        """
        async with self._admission_lock:
            async with self.session_factory() as session:
                report_repository = ReportRepository(session)
                version_repository = ReportVersionRepository(session)
                file_repository = UploadedFileRepository(session)

                report = await report_repository.get_by_uuid(report_id)
                if not report:
                    raise ReportNotFoundError(report_id)

                # Отчет без версий (первая генерация не удалась) повторяется без ссылки
                previous = None
                if previous_version_id is not None:
                    previous = await version_repository.get_by_uuid(previous_version_id)
                    if not previous or previous.report_id != report.uuid:
                        raise VersionNotFoundError(previous_version_id)
                elif await version_repository.count_by_report(report.uuid) > 0:
                    raise MissingVersionReferenceError()

                if not report.is_terminal or self.supervisor.is_active(report.uuid):
                    raise ReportBusyError(report.uuid)

                current_file = await file_repository.get_by_uuid(report.file_id)
                current_bytes = await self.artifact_store.read(current_file.storage_path) if current_file else None

                if file_id is not None:
                    new_file = await file_repository.get_by_uuid(file_id)
                    if not new_file:
                        raise FileNotFoundInStoreError(file_id)
                    if not is_valid_format(new_file.file_name):
                        raise UnsupportedFormatError(new_file.file_name)
                    source_bytes = await self.artifact_store.read(new_file.storage_path)
                    if current_bytes is not None and source_bytes == current_bytes:
                        raise DuplicateContentError()
                elif current_bytes is not None:
                    source_bytes = current_bytes
                else:
                    raise FileNotFoundInStoreError(report.file_id)

                report.reopen(prompt=prompt, file_id=file_id)
                await report_repository.update(report)
                if title:
                    report.rename(title)
                    await report_repository.update_title(report)
                await session.commit()

            logger.info(f"Report {report.uuid} reopened for a new version by user {requester.uuid}")
            self._schedule(GenerationTask(
                report_id=report.uuid,
                source_content=decode_artifact(source_bytes),
                prompt=prompt,
                requested_by=requester.uuid,
                author_name=requester.username,
                title=report.title,
                previous_version_id=previous.uuid if previous else None,
                previous_content=previous.content if previous else None
            ))
        return report

    async def update_metadata(self, report_id: uuid.UUID, title: str) -> Report:
        async with self.session_factory() as session:
            return await ReportService(session).update_title(report_id, title)

    async def get_status(self, report_id: uuid.UUID) -> dict:
        async with self.session_factory() as session:
            return await ReportService(session).get_status(report_id)

    async def get_report(self, report_id: uuid.UUID) -> Report:
        async with self.session_factory() as session:
            return await ReportService(session).get_report(report_id)

    async def list_reports(self, requester: User, limit: int = 100, offset: int = 0) -> List[Report]:
        async with self.session_factory() as session:
            return await ReportService(session).get_user_reports(requester.uuid, limit, offset)

    async def delete_report(self, report_id: uuid.UUID) -> None:
        async with self._admission_lock:
            if self.supervisor.is_active(report_id):
                raise ReportBusyError(report_id)
            async with self.session_factory() as session:
                await ReportService(session).delete_report(report_id)
        logger.info(f"Report {report_id} deleted")

    async def get_sections(self, report_id: uuid.UUID) -> dict:
        async with self.session_factory() as session:
            return await ReportService(session).get_sections(report_id)

    async def list_versions(self, report_id: uuid.UUID, descending: bool = False) -> List[ReportVersion]:
        async with self.session_factory() as session:
            await ReportService(session).get_report(report_id)
            return await ReportVersionService(session).list_versions(report_id, descending=descending)

    async def get_version(self, report_id: uuid.UUID, version_id: uuid.UUID) -> ReportVersion:
        async with self.session_factory() as session:
            version = await ReportVersionService(session).get_version(version_id)
        if not version or version.report_id != report_id:
            raise VersionNotFoundError(version_id)
        return version

    async def compare_versions(self, report_id: uuid.UUID, from_version: int, to_version: int) -> str:
        async with self.session_factory() as session:
            await ReportService(session).get_report(report_id)
            diff = await ReportVersionService(session).compare_versions(report_id, from_version, to_version)
        if diff is None:
            raise VersionNotFoundError(f"{report_id}:v{from_version}..v{to_version}")
        return diff

    def _schedule(self, task: GenerationTask) -> None:
        try:
            self.supervisor.spawn(task.report_id, lambda: self.run(task))
        except TaskAlreadyRunningError as e:
            raise ReportBusyError(task.report_id) from e

    async def wait_idle(self) -> None:
        await self.supervisor.join()

    async def run(self, task: GenerationTask) -> None:
        """Фоновый прогон; всегда заканчивается попыткой записать терминальное состояние"""
        started = self.clock()
        try:
            await self._start(task)

            try:
                raw_text = await self.generation_client.generate(self._build_prompt(task))
            except GenerationError as e:
                logger.warning(f"Generation for report {task.report_id} failed after {e.attempts} attempt(s): {e.message}")
                await self._finish_failed(task, e.message, started)
                return

            classified = classify_response(raw_text)
            if classified.is_error:
                logger.info(f"Generation service rejected report {task.report_id}: {classified.content!r}")
                await self._finish_failed(task, classified.content, started)
                return

            await self._finish_completed(task, classified.content, started)
        except Exception as e:
            logger.exception(f"Unexpected error while generating report {task.report_id}")
            await self._finish_failed(task, str(e) or e.__class__.__name__, started)

    async def _start(self, task: GenerationTask) -> None:
        async with self.session_factory() as session:
            repository = ReportRepository(session)
            report = await repository.get_by_uuid(task.report_id, include_deleted=True)
            if not report:
                raise ReportNotFoundError(task.report_id)
            report.start()
            await repository.update(report)
            await session.commit()

        logger.info(f"Report {task.report_id} is in progress")
        await self._notify(self.notifier.report_in_progress(task.requested_by, task.report_id, task.title))

    async def _finish_completed(self, task: GenerationTask, content: str, started: float) -> None:
        duration_ms = self._elapsed_ms(started)
        async with self.session_factory() as session:
            repository = ReportRepository(session)
            report = await repository.get_by_uuid(task.report_id, include_deleted=True)
            if not report:
                raise ReportNotFoundError(task.report_id)

            # Версия и статус фиксируются одной транзакцией
            version = await ReportVersionService(session).append(
                report_id=report.uuid,
                prompt=task.prompt,
                content=content,
                created_by=task.requested_by,
                duration_ms=duration_ms
            )
            report.complete(content, duration_ms)
            await repository.update(report)
            await session.commit()

        logger.info(f"Report {task.report_id} completed as version {version.version_number} in {duration_ms} ms")
        await self._notify(self.notifier.report_completed(task.requested_by, task.report_id, task.title))

    async def _finish_failed(self, task: GenerationTask, detail: str, started: float) -> None:
        duration_ms = self._elapsed_ms(started)
        try:
            async with self.session_factory() as session:
                repository = ReportRepository(session)
                report = await repository.get_by_uuid(task.report_id, include_deleted=True)
                if report is None:
                    logger.error(f"Report {task.report_id} disappeared before its failure could be stored")
                elif report.is_terminal:
                    logger.error(f"Report {task.report_id} already {report.status.value}, failure not recorded")
                    return
                else:
                    if report.status == ReportStatus.PENDING:
                        report.start()
                    report.fail(detail, duration_ms)
                    await repository.update(report)
                    await session.commit()
                    logger.info(f"Report {task.report_id} failed in {duration_ms} ms")
        except Exception:
            logger.exception(f"Could not store failure of report {task.report_id}")

        await self._notify(self.notifier.report_failed(task.requested_by, task.report_id, task.title, detail))

    async def _notify(self, delivery: Awaitable) -> None:
        try:
            await delivery
        except Exception:
            logger.exception("Notification could not be stored")

    def _build_prompt(self, task: GenerationTask) -> str:
        if task.is_versioning:
            return build_versioning_prompt(
                task.source_content, task.previous_content, task.prompt, task.author_name
            )
        return build_report_prompt(task.source_content, task.prompt, task.author_name, task.title)

    def _elapsed_ms(self, started: float) -> int:
        return int((self.clock() - started) * 1000)
