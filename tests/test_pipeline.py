import asyncio
import uuid

import pytest

from app.db.repositories.file_repository import UploadedFileRepository
from app.db.repositories.notification_repository import NotificationRepository
from app.db.repositories.report_repository import ReportRepository
from app.domains.files.entities import UploadedFile
from app.domains.notifications.entities import NotificationKind
from app.domains.reports.entities import ReportStatus
from app.domains.reports.exceptions import (
    DuplicateContentError, FileNotFoundInStoreError, MissingVersionReferenceError,
    ReportBusyError, ReportNotFoundError, UnsupportedFormatError, VersionNotFoundError
)

from conftest import REPORT_TEXT

RESULTS_JSON = b'{"tests": [{"name": "login", "status": "passed"}]}'


async def stored_kinds(session_factory, report_id):
    async with session_factory() as session:
        return [n.kind for n in await NotificationRepository(session).get_by_report(report_id)]


async def wait_until_generating(generator, calls: int = 1):
    for _ in range(500):
        if generator.calls >= calls:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("generation service was never called")


async def completed_report(pipeline, upload, analyst, payload=RESULTS_JSON):
    uploaded = await upload(analyst, "results.json", payload)
    report = await pipeline.submit(uploaded.uuid, analyst, title="Sprint 12")
    await pipeline.wait_idle()
    return report


async def test_first_generation_completes(pipeline, upload, analyst, generator, publisher, session_factory):
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)

    report = await pipeline.submit(uploaded.uuid, analyst, title="Sprint 12")
    assert report.status == ReportStatus.PENDING

    await pipeline.wait_idle()

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.COMPLETED
    assert status["content"] == REPORT_TEXT
    assert status["duration_ms"] >= 0

    versions = await pipeline.list_versions(report.uuid)
    assert [v.version_number for v in versions] == [1]
    assert versions[0].content == REPORT_TEXT

    assert "login" in generator.prompts[0]
    assert "analyst" in generator.prompts[0]
    assert publisher.kinds(report.uuid) == ["report_in_progress", "report_completed"]
    assert await stored_kinds(session_factory, report.uuid) == [
        NotificationKind.REPORT_IN_PROGRESS, NotificationKind.REPORT_COMPLETED
    ]


async def test_default_title_is_assigned(pipeline, upload, analyst):
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)
    report = await pipeline.submit(uploaded.uuid, analyst)
    await pipeline.wait_idle()

    assert report.title.startswith("Report generated ")


async def test_unsupported_format_creates_nothing(pipeline, analyst, artifact_store, session_factory, publisher):
    storage_path = await artifact_store.save("results.exe", b"MZ")
    async with session_factory() as session:
        uploaded = await UploadedFileRepository(session).create(
            UploadedFile.create_file(analyst.uuid, "results.exe", storage_path, 2)
        )
        await session.commit()

    with pytest.raises(UnsupportedFormatError):
        await pipeline.submit(uploaded.uuid, analyst)

    assert await pipeline.list_reports(analyst) == []
    assert publisher.events == []


async def test_missing_file_is_rejected(pipeline, analyst):
    with pytest.raises(FileNotFoundInStoreError):
        await pipeline.submit(uuid.uuid4(), analyst)


async def test_service_rejection_fails_without_version(pipeline, upload, analyst, generator, publisher, session_factory):
    generator.responses = ["Checking...\n[ERROR] Unsupported file"]
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)

    report = await pipeline.submit(uploaded.uuid, analyst, title="Sprint 12")
    await pipeline.wait_idle()

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.FAILED
    assert status["error_detail"] == "Unsupported file"
    assert status["content"] is None
    assert await pipeline.list_versions(report.uuid) == []

    assert publisher.kinds(report.uuid) == ["report_in_progress", "report_failed"]
    assert publisher.events[-1][1]["message"] == 'Error generating report "Sprint 12": Unsupported file'
    assert await stored_kinds(session_factory, report.uuid) == [
        NotificationKind.REPORT_IN_PROGRESS, NotificationKind.REPORT_FAILED
    ]


async def test_two_service_failures_keep_second_message(pipeline, upload, analyst, generator, publisher):
    generator.responses = [TimeoutError("first timeout"), ConnectionError("second outage"), REPORT_TEXT]
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)

    report = await pipeline.submit(uploaded.uuid, analyst)
    await pipeline.wait_idle()

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.FAILED
    assert status["error_detail"] == "second outage"
    assert generator.calls == 2
    assert publisher.kinds(report.uuid) == ["report_in_progress", "report_failed"]


async def test_single_failure_is_retried(pipeline, upload, analyst, generator):
    generator.responses = [ConnectionError("reset"), REPORT_TEXT]
    report = await completed_report(pipeline, upload, analyst)

    assert (await pipeline.get_status(report.uuid))["status"] == ReportStatus.COMPLETED
    assert generator.calls == 2


async def test_unexpected_error_still_fails_report(pipeline, upload, analyst, publisher):
    class ExplodingClient:
        async def generate(self, prompt):
            raise RuntimeError("boom")

    pipeline.generation_client = ExplodingClient()
    report = await completed_report(pipeline, upload, analyst)

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.FAILED
    assert status["error_detail"] == "boom"
    assert publisher.kinds(report.uuid) == ["report_in_progress", "report_failed"]


async def test_publisher_failure_does_not_affect_report(session_factory, upload, analyst, pipeline):
    pipeline.notifier.publisher.fail = True
    report = await completed_report(pipeline, upload, analyst)

    assert (await pipeline.get_status(report.uuid))["status"] == ReportStatus.COMPLETED
    assert await stored_kinds(session_factory, report.uuid) == [
        NotificationKind.REPORT_IN_PROGRESS, NotificationKind.REPORT_COMPLETED
    ]


async def test_regenerate_with_new_file_adds_version(pipeline, upload, analyst, generator, publisher):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]
    new_file = await upload(analyst, "results.xml", b"<testsuite tests='4' failures='0'/>")

    generator.responses = ["[CONTEO]\nTotal: 4\n[RESUMEN_CAMBIOS]\nOne more test"]
    reopened = await pipeline.regenerate(
        report.uuid, analyst, file_id=new_file.uuid, previous_version_id=first.uuid
    )
    assert reopened.status == ReportStatus.PENDING
    await pipeline.wait_idle()

    versions = await pipeline.list_versions(report.uuid, descending=True)
    assert [v.version_number for v in versions] == [2, 1]
    assert versions[0].content.startswith("[CONTEO]\nTotal: 4")

    versioning_prompt = generator.prompts[-1]
    assert "testsuite" in versioning_prompt
    assert "Total: 3, passed: 2, failed: 1" in versioning_prompt

    current = await pipeline.get_report(report.uuid)
    assert current.file_id == new_file.uuid
    assert current.status == ReportStatus.COMPLETED
    assert publisher.kinds(report.uuid) == [
        "report_in_progress", "report_completed", "report_in_progress", "report_completed"
    ]


async def test_regenerate_with_instruction_only(pipeline, upload, analyst, generator):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]

    await pipeline.regenerate(report.uuid, analyst, prompt="Only list failures", previous_version_id=first.uuid)
    await pipeline.wait_idle()

    assert "Only list failures" in generator.prompts[-1]
    assert "login" in generator.prompts[-1]
    versions = await pipeline.list_versions(report.uuid)
    assert [v.version_number for v in versions] == [1, 2]
    assert versions[1].prompt == "Only list failures"


async def test_duplicate_content_is_rejected(pipeline, upload, analyst, publisher):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]
    same_bytes = await upload(analyst, "copy.json", RESULTS_JSON)
    events_before = len(publisher.events)

    with pytest.raises(DuplicateContentError) as exc_info:
        await pipeline.regenerate(report.uuid, analyst, file_id=same_bytes.uuid, previous_version_id=first.uuid)

    assert str(exc_info.value) == "Duplicate content: use the instruction text to adjust the report"
    assert (await pipeline.get_status(report.uuid))["status"] == ReportStatus.COMPLETED
    assert len(publisher.events) == events_before


async def test_regenerate_requires_previous_version(pipeline, upload, analyst):
    report = await completed_report(pipeline, upload, analyst)

    with pytest.raises(MissingVersionReferenceError):
        await pipeline.regenerate(report.uuid, analyst, prompt="again")


async def test_previous_version_must_belong_to_report(pipeline, upload, analyst):
    first_report = await completed_report(pipeline, upload, analyst)
    other_report = await completed_report(pipeline, upload, analyst, payload=b'{"tests": []}')
    foreign = (await pipeline.list_versions(other_report.uuid))[0]

    with pytest.raises(VersionNotFoundError):
        await pipeline.regenerate(first_report.uuid, analyst, prompt="again", previous_version_id=foreign.uuid)

    with pytest.raises(VersionNotFoundError):
        await pipeline.regenerate(first_report.uuid, analyst, prompt="again", previous_version_id=uuid.uuid4())


async def test_failed_first_run_can_be_retried_without_version(pipeline, upload, analyst, generator):
    generator.responses = ["[ERROR] Empty file"]
    report = await completed_report(pipeline, upload, analyst)
    assert (await pipeline.get_status(report.uuid))["status"] == ReportStatus.FAILED

    await pipeline.regenerate(report.uuid, analyst, prompt="Try again")
    await pipeline.wait_idle()

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.COMPLETED
    assert status["error_detail"] is None
    assert [v.version_number for v in await pipeline.list_versions(report.uuid)] == [1]


async def test_regenerate_while_running_is_rejected(pipeline, upload, analyst, generator):
    generator.gate = asyncio.Event()
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)
    report = await pipeline.submit(uploaded.uuid, analyst)

    with pytest.raises(ReportBusyError):
        await pipeline.regenerate(report.uuid, analyst, prompt="again")
    with pytest.raises(ReportBusyError):
        await pipeline.delete_report(report.uuid)

    generator.gate.set()
    await pipeline.wait_idle()
    assert [v.version_number for v in await pipeline.list_versions(report.uuid)] == [1]


async def test_update_metadata_changes_title_only(pipeline, upload, analyst, publisher):
    report = await completed_report(pipeline, upload, analyst)
    events_before = len(publisher.events)

    renamed = await pipeline.update_metadata(report.uuid, "Release 1.4")

    assert renamed.title == "Release 1.4"
    assert renamed.status == ReportStatus.COMPLETED
    assert len(publisher.events) == events_before


async def test_delete_report(pipeline, upload, analyst):
    report = await completed_report(pipeline, upload, analyst)

    await pipeline.delete_report(report.uuid)

    with pytest.raises(ReportNotFoundError):
        await pipeline.get_report(report.uuid)
    assert await pipeline.list_reports(analyst) == []


async def test_compare_versions(pipeline, upload, analyst, generator):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]
    generator.responses = ["[CONTEO]\nTotal: 5\n"]
    await pipeline.regenerate(report.uuid, analyst, prompt="recount", previous_version_id=first.uuid)
    await pipeline.wait_idle()

    diff = await pipeline.compare_versions(report.uuid, 1, 2)
    assert "+Total: 5" in diff

    with pytest.raises(VersionNotFoundError):
        await pipeline.compare_versions(report.uuid, 1, 7)


async def test_in_progress_is_visible_while_generating(pipeline, upload, analyst, generator, publisher):
    generator.gate = asyncio.Event()
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)
    report = await pipeline.submit(uploaded.uuid, analyst)

    await wait_until_generating(generator)

    status = await pipeline.get_status(report.uuid)
    assert status["status"] == ReportStatus.IN_PROGRESS
    assert status["content"] is None
    assert publisher.kinds(report.uuid) == ["report_in_progress"]

    generator.gate.set()
    await pipeline.wait_idle()
    assert (await pipeline.get_status(report.uuid))["status"] == ReportStatus.COMPLETED


async def test_title_edit_during_run_keeps_lifecycle(pipeline, upload, analyst, generator, session_factory):
    generator.gate = asyncio.Event()
    uploaded = await upload(analyst, "results.json", RESULTS_JSON)
    report = await pipeline.submit(uploaded.uuid, analyst, title="A")
    await wait_until_generating(generator)

    async with session_factory() as session:
        snapshot = await ReportRepository(session).get_by_uuid(report.uuid)
    assert snapshot.status == ReportStatus.IN_PROGRESS

    await pipeline.update_metadata(report.uuid, "B")
    generator.gate.set()
    await pipeline.wait_idle()
    assert (await pipeline.get_report(report.uuid)).title == "B"

    # Запись заголовка по снимку, прочитанному до завершения генерации
    snapshot.rename("C")
    async with session_factory() as session:
        await ReportRepository(session).update_title(snapshot)
        await session.commit()

    current = await pipeline.get_report(report.uuid)
    assert current.status == ReportStatus.COMPLETED
    assert current.content == REPORT_TEXT
    assert current.title == "C"
    assert [v.version_number for v in await pipeline.list_versions(report.uuid)] == [1]


async def test_rejected_regenerate_keeps_title(pipeline, upload, analyst):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]
    same_bytes = await upload(analyst, "copy.json", RESULTS_JSON)

    with pytest.raises(DuplicateContentError):
        await pipeline.regenerate(
            report.uuid, analyst, file_id=same_bytes.uuid, previous_version_id=first.uuid, title="Renamed"
        )
    with pytest.raises(MissingVersionReferenceError):
        await pipeline.regenerate(report.uuid, analyst, prompt="again", title="Renamed")

    assert (await pipeline.get_report(report.uuid)).title == "Sprint 12"


async def test_accepted_regenerate_applies_title(pipeline, upload, analyst, publisher):
    report = await completed_report(pipeline, upload, analyst)
    first = (await pipeline.list_versions(report.uuid))[0]

    await pipeline.regenerate(
        report.uuid, analyst, prompt="recount", previous_version_id=first.uuid, title="Release 1.4"
    )
    await pipeline.wait_idle()

    current = await pipeline.get_report(report.uuid)
    assert current.title == "Release 1.4"
    assert current.status == ReportStatus.COMPLETED
    assert publisher.events[-1][1]["title"] == "Release 1.4"
