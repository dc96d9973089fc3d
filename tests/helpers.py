import hashlib
import hmac
import os
import time
import uuid

from sqlalchemy.orm import Session

from studio_api.core.errors import ArtifactCleanupError, UpstreamUnavailableError
from studio_api.models.video import Video
from studio_api.services.mux_service import ProviderUpload, VideoProvider
from studio_api.services.r2_service import ArtifactStore, CleanupResult, StoredArtifact

WEBHOOK_SECRET = os.environ.get("MUX_WEBHOOK_SECRET", "test-webhook-secret")
OWNER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


class FakeArtifactStore(ArtifactStore):
    """In-memory artifact store recording every call."""

    def __init__(self) -> None:
        self.counter = 0
        self.live: set[str] = set()
        self.uploads: list[list[str]] = []
        self.deletes: list[set[str]] = []
        self.presigned: list[tuple[str, str]] = []
        self.fail_uploads = False
        self.fail_deletes = False

    def upload_from_urls(self, urls: list[str]) -> list[StoredArtifact]:
        self.uploads.append(list(urls))
        if self.fail_uploads:
            raise UpstreamUnavailableError("Failed to store artifact.")
        stored = []
        for _ in urls:
            self.counter += 1
            key = f"key-{self.counter}"
            self.live.add(key)
            stored.append(StoredArtifact(key=key, url=self.public_url(key)))
        return stored

    def delete_by_keys(self, keys: set[str]) -> CleanupResult:
        self.deletes.append(set(keys))
        if self.fail_deletes:
            return CleanupResult(requested=set(keys), error=ArtifactCleanupError("R2 unavailable"))
        self.live -= set(keys)
        return CleanupResult(requested=set(keys))

    def generate_presigned_upload_url(self, key: str, content_type: str, expiration: int = 3600) -> str:
        self.presigned.append((key, content_type))
        return f"https://upload.example.test/{key}?X-Amz-Expires={expiration}"

    def exists(self, key: str) -> bool:
        return key in self.live

    def put(self, key: str) -> None:
        """Simulates the client PUTting to a presigned URL."""
        self.live.add(key)

    @property
    def deleted_keys(self) -> set[str]:
        return set().union(*self.deletes)


class FakeVideoProvider(VideoProvider):
    def __init__(self) -> None:
        self.uploads: list[dict] = []
        self.deleted_assets: list[str] = []
        self.fail_create = False
        self.fail_delete = False

    def create_upload(self, upload_settings: dict) -> ProviderUpload:
        if self.fail_create:
            raise UpstreamUnavailableError("Could not create an upload URL at this time. Please try again later.")
        self.uploads.append(upload_settings)
        upload_id = f"upload-{len(self.uploads)}"
        return ProviderUpload(id=upload_id, url=f"https://storage.mux.example/{upload_id}")

    def delete_asset(self, asset_id: str) -> None:
        if self.fail_delete:
            raise UpstreamUnavailableError("Failed to delete Mux asset.")
        self.deleted_assets.append(asset_id)


def sign(body: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode("utf-8"), f"{timestamp}.".encode("utf-8") + body, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def owner_headers(user_id: uuid.UUID = OWNER_ID) -> dict:
    return {"X-User-Id": str(user_id)}


def fresh(db: Session, video_id: uuid.UUID) -> Video | None:
    """Re-reads a video, ignoring anything cached in the session."""
    db.expire_all()
    return db.get(Video, video_id)


def assert_pairs_consistent(video: Video) -> None:
    assert (video.thumbnail_key is None) == (video.thumbnail_url is None)
    assert (video.preview_key is None) == (video.preview_url is None)
