from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from typing import List
import uuid

from app.api.dependencies import get_pipeline
from app.core.auth import get_current_user
from app.domains.identity.entities import User
from app.domains.reports.entities import Report
from app.domains.reports.exceptions import (
    DuplicateContentError, FileNotFoundInStoreError, MissingVersionReferenceError,
    ReportBusyError, ReportError, ReportNotFoundError, UnsupportedFormatError,
    VersionNotFoundError
)
from app.domains.reports.pipeline import ReportPipeline
from app.domains.reports.schemas import (
    ReportGenerateRequest, ReportUpdateRequest, SubmissionResponse, ReportStatusResponse,
    ReportResponse, ReportListResponse, ReportVersionResponse, ReportDiffResponse,
    ReportSectionsResponse
)

router = APIRouter(prefix="/reports", tags=["reports"])

_STATUS_BY_ERROR = {
    ReportNotFoundError: status.HTTP_404_NOT_FOUND,
    FileNotFoundInStoreError: status.HTTP_404_NOT_FOUND,
    VersionNotFoundError: status.HTTP_404_NOT_FOUND,
    UnsupportedFormatError: status.HTTP_400_BAD_REQUEST,
    MissingVersionReferenceError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ReportBusyError: status.HTTP_409_CONFLICT,
    DuplicateContentError: status.HTTP_409_CONFLICT,
}


def to_http_error(error: ReportError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=str(error))


def submission_response(report: Report) -> JSONResponse:
    receipt = SubmissionResponse(
        report_id=report.uuid,
        status=report.status,
        poll_url=f"/reports/{report.uuid}/status"
    )
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=receipt.model_dump(mode="json"))


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_report(
    request: ReportGenerateRequest,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    """Запуск первой генерации; результат опрашивается по poll_url"""
    try:
        report = await pipeline.submit(
            file_id=request.file_id,
            requester=current_user,
            title=request.title,
            prompt=request.prompt
        )
    except ReportError as e:
        raise to_http_error(e)

    return submission_response(report)


@router.get("", response_model=ReportListResponse)
async def list_reports(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    offset = (page - 1) * per_page
    reports = await pipeline.list_reports(current_user, limit=per_page, offset=offset)
    return ReportListResponse(
        reports=[ReportResponse.model_validate(report) for report in reports],
        page=page,
        per_page=per_page
    )


@router.get("/{report_uuid}", response_model=ReportResponse)
async def get_report(
    report_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    try:
        return await pipeline.get_report(report_uuid)
    except ReportError as e:
        raise to_http_error(e)


@router.get("/{report_uuid}/status", response_model=ReportStatusResponse)
async def get_report_status(
    report_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    """Состояние генерации для опроса"""
    try:
        return await pipeline.get_status(report_uuid)
    except ReportError as e:
        raise to_http_error(e)


@router.put("/{report_uuid}", response_model=ReportResponse, responses={202: {"model": SubmissionResponse}})
async def update_report(
    report_uuid: uuid.UUID,
    update_data: ReportUpdateRequest,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    """Изменение заголовка и/или новая версия по файлу или инструкции"""
    if not update_data.title and not update_data.requests_generation:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to update"
        )

    try:
        if update_data.requests_generation:
            report = await pipeline.regenerate(
                report_uuid,
                requester=current_user,
                prompt=update_data.prompt,
                file_id=update_data.file_id,
                previous_version_id=update_data.previous_version_id,
                title=update_data.title
            )
            return submission_response(report)

        return await pipeline.update_metadata(report_uuid, update_data.title)
    except ReportError as e:
        raise to_http_error(e)


@router.delete("/{report_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    try:
        await pipeline.delete_report(report_uuid)
    except ReportError as e:
        raise to_http_error(e)


@router.get("/{report_uuid}/sections", response_model=ReportSectionsResponse)
async def get_report_sections(
    report_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    try:
        sections = await pipeline.get_sections(report_uuid)
    except ReportError as e:
        raise to_http_error(e)

    return ReportSectionsResponse(report_id=report_uuid, sections=sections)


@router.get("/{report_uuid}/versions", response_model=List[ReportVersionResponse])
async def list_report_versions(
    report_uuid: uuid.UUID,
    descending: bool = Query(False),
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    """История версий отчета"""
    try:
        return await pipeline.list_versions(report_uuid, descending=descending)
    except ReportError as e:
        raise to_http_error(e)


@router.get("/{report_uuid}/versions/diff", response_model=ReportDiffResponse)
async def compare_report_versions(
    report_uuid: uuid.UUID,
    from_version: int = Query(..., ge=1),
    to_version: int = Query(..., ge=1),
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    try:
        diff = await pipeline.compare_versions(report_uuid, from_version, to_version)
    except ReportError as e:
        raise to_http_error(e)

    return ReportDiffResponse(
        report_id=report_uuid,
        from_version=from_version,
        to_version=to_version,
        diff=diff
    )


@router.get("/{report_uuid}/versions/{version_uuid}", response_model=ReportVersionResponse)
async def get_report_version(
    report_uuid: uuid.UUID,
    version_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    pipeline: ReportPipeline = Depends(get_pipeline)
):
    try:
        return await pipeline.get_version(report_uuid, version_uuid)
    except ReportError as e:
        raise to_http_error(e)
