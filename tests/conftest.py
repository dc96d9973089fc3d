import json
import os
import uuid
from collections.abc import Iterator

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MUX_TOKEN_ID", "test-token-id")
os.environ.setdefault("MUX_TOKEN_SECRET", "test-token-secret")
os.environ.setdefault("MUX_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("R2_ENDPOINT_URL", "https://r2.example.test")
os.environ.setdefault("R2_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("R2_SECRET_ACCESS_KEY", "test-secret-key")
os.environ.setdefault("R2_BUCKET_NAME", "studio-test")
os.environ.setdefault("R2_PUBLIC_URL", "https://files.example.test")
os.environ.setdefault("THUMBNAIL_GENERATION_HOSTS", '["ai.example.test"]')

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from studio_api.api.dependencies import get_artifact_store, get_video_provider  # noqa: E402
from studio_api.main import app  # noqa: E402
from studio_api.models.video import Video  # noqa: E402
from studio_api.services.video_service import VideoService  # noqa: E402
from studio_api.services.video_store import VideoStore  # noqa: E402
from studio_api.shared.db.database import Base, get_db_session  # noqa: E402
from tests.helpers import OWNER_ID, FakeArtifactStore, FakeVideoProvider, sign  # noqa: E402


@pytest.fixture
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def videos(db: Session) -> VideoStore:
    return VideoStore(db)


@pytest.fixture
def artifact_store() -> FakeArtifactStore:
    return FakeArtifactStore()


@pytest.fixture
def provider() -> FakeVideoProvider:
    return FakeVideoProvider()


@pytest.fixture
def service(videos: VideoStore, artifact_store: FakeArtifactStore, provider: FakeVideoProvider) -> VideoService:
    return VideoService(videos, artifact_store, provider)


@pytest.fixture
def client(session_factory: sessionmaker, artifact_store: FakeArtifactStore, provider: FakeVideoProvider) -> Iterator[TestClient]:
    def override_db_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_artifact_store] = lambda: artifact_store
    app.dependency_overrides[get_video_provider] = lambda: provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_video(videos: VideoStore):
    def factory(**fields) -> Video:
        values = {
            "user_id": OWNER_ID,
            "title": "Untitled",
            "mux_status": "waiting",
            "mux_upload_id": f"upload-{uuid.uuid4().hex[:8]}",
        }
        values.update(fields)
        return videos.add(Video(**values))

    return factory


@pytest.fixture
def send_event(client: TestClient):
    def send(event_type: str, data: dict, *, signature: str | None = None, signed: bool = True):
        body = json.dumps({"type": event_type, "data": data}).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if signed:
            headers["Mux-Signature"] = signature or sign(body)
        return client.post("/api/v1/videos/webhook", content=body, headers=headers)

    return send
