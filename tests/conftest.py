import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="report-generator-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'app.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["LOG_LEVEL"] = "WARNING"

import time
import uuid

import pytest
from fastapi.testclient import TestClient

from app.core.db import Base, build_engine, build_session_factory
from app.db.repositories.user_repository import UserRepository
from app.domains.files.services import FileService
from app.domains.generation.client import GenerationClient
from app.domains.generation.retry import RetryPolicy
from app.domains.identity.entities import User
from app.domains.notifications.services import NotificationService
from app.domains.reports.pipeline import ReportPipeline
from app.infrastructure.storage import ArtifactStore
from app.infrastructure.tasks import TaskSupervisor

REPORT_TEXT = "[CONTEO]\nTotal: 3, passed: 2, failed: 1\n[TEL]\nLogin suite\n[TIR]\nOne defect found"


async def no_sleep(delay: float) -> None:
    return None


class FakeGenerator:
    """Заранее заданные ответы вместо сервиса генерации.

    Элемент ``responses``: строка, список чанков или исключение.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []
        self.gate = None

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def stream(self, prompt: str):
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()

        response = self.responses.pop(0) if self.responses else REPORT_TEXT
        if isinstance(response, Exception):
            raise response

        for chunk in ([response] if isinstance(response, str) else response):
            yield chunk


class RecordingPublisher:
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def publish(self, user_id, event):
        if self.fail:
            raise ConnectionError("socket closed")
        self.events.append((user_id, event))

    def kinds(self, report_id=None):
        return [
            event["kind"] for _, event in self.events
            if report_id is None or event["report_id"] == str(report_id)
        ]


def make_generation_client(generator) -> GenerationClient:
    return GenerationClient(generator, RetryPolicy(max_attempts=2, sleep=no_sleep))


@pytest.fixture
async def session_factory(tmp_path):
    import app.db.models  # noqa: F401

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'reports.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest.fixture
def artifact_store(tmp_path):
    return ArtifactStore(str(tmp_path / "uploads"))


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
async def pipeline(session_factory, artifact_store, generator, publisher):
    supervisor = TaskSupervisor(max_concurrency=2)
    yield ReportPipeline(
        session_factory=session_factory,
        generation_client=make_generation_client(generator),
        notifier=NotificationService(session_factory, publisher),
        supervisor=supervisor,
        artifact_store=artifact_store
    )
    await supervisor.shutdown()


@pytest.fixture
async def analyst(session_factory):
    async with session_factory() as session:
        user = await UserRepository(session).create(User(
            uuid=uuid.uuid4(),
            email="analyst@example.com",
            username="analyst",
            password_hash="not-used-in-tests"
        ))
        await session.commit()
    return user


@pytest.fixture
def upload(session_factory, artifact_store):
    async def _upload(owner: User, file_name: str, payload: bytes):
        async with session_factory() as session:
            return await FileService(session, artifact_store).upload(owner.uuid, file_name, payload)
    return _upload


@pytest.fixture
def client(generator):
    from app.main import app

    with TestClient(app) as c:
        app.state.pipeline.generation_client = make_generation_client(generator)
        yield c


def auth_headers(client, username: str = None):
    """Регистрация нового пользователя и заголовок Authorization"""
    username = username or f"user-{uuid.uuid4().hex[:8]}"
    payload = {"email": f"{username}@example.com", "username": username, "password": "Secret123"}
    resp = client.post("/auth/register", json=payload)
    assert resp.status_code == 201, resp.text
    login = client.post("/auth/login", json={"email": payload["email"], "password": payload["password"]})
    assert login.status_code == 200, login.text
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


def upload_file(client, headers, file_name: str, payload: bytes):
    return client.post("/files", files={"file": (file_name, payload, "application/octet-stream")}, headers=headers)


def wait_for_status(client, headers, report_id, statuses=("completed", "failed"), timeout: float = 5.0):
    """Опрос статуса, пока отчет не перейдет в одно из ожидаемых состояний"""
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/reports/{report_id}/status", headers=headers).json()
        if body["status"] in statuses:
            return body
        if time.monotonic() > deadline:
            raise AssertionError(f"Report {report_id} stuck in {body['status']}")
        time.sleep(0.02)
