from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.http.auth import router as auth_router
from app.api.http.files import router as files_router
from app.api.http.notifications import router as notifications_router
from app.api.http.reports import router as reports_router
from app.api.ws.notifications import ConnectionManager, router as websocket_router
from app.core.config import settings
from app.core.db import SessionLocal, engine, init_models
from app.domains.generation.client import GeminiTextGenerator, GenerationClient
from app.domains.generation.retry import RetryPolicy
from app.domains.notifications.services import NotificationService
from app.domains.reports.pipeline import ReportPipeline
from app.infrastructure.storage import ArtifactStore
from app.infrastructure.tasks import TaskSupervisor

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def build_generation_client() -> GenerationClient:
    return GenerationClient(
        generator=GeminiTextGenerator(settings.gemini_api_key, settings.gemini_model),
        retry_policy=RetryPolicy(
            max_attempts=settings.generation_max_attempts,
            backoff=settings.generation_retry_backoff_seconds
        ),
        max_response_chars=settings.generation_max_response_chars
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()

    connection_manager = ConnectionManager()
    supervisor = TaskSupervisor(max_concurrency=settings.generation_max_concurrency)
    artifact_store = ArtifactStore(settings.upload_dir)

    app.state.connection_manager = connection_manager
    app.state.artifact_store = artifact_store
    app.state.supervisor = supervisor
    app.state.pipeline = ReportPipeline(
        session_factory=SessionLocal,
        generation_client=build_generation_client(),
        notifier=NotificationService(SessionLocal, connection_manager),
        supervisor=supervisor,
        artifact_store=artifact_store
    )
    logger.info(f"Report generation service started with model {settings.gemini_model}")

    yield

    await supervisor.shutdown()
    await engine.dispose()
    logger.info("Report generation service stopped")


app = FastAPI(
    title="Test Report Generator",
    description="Генерация отчетов по результатам тестирования",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(files_router)
app.include_router(reports_router)
app.include_router(notifications_router)
app.include_router(websocket_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
