from fastapi import Request

from app.domains.reports.pipeline import ReportPipeline
from app.infrastructure.storage import ArtifactStore


def get_pipeline(request: Request) -> ReportPipeline:
    return request.app.state.pipeline


def get_artifact_store(request: Request) -> ArtifactStore:
    return request.app.state.artifact_store
