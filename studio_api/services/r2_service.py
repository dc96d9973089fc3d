# studio_api/services/r2_service.py

import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from urllib.parse import urlparse

import boto3
import requests
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import settings
from ..core.errors import ArtifactCleanupError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredArtifact:
    """An object that exists in the artifact store."""
    key: str
    url: str


@dataclass(frozen=True)
class UploadTarget:
    """Where a client may PUT one object, and the key it will be stored under."""
    key: str
    upload_url: str


@dataclass
class CleanupResult:
    """
    Outcome of a best-effort delete. Callers only log it; a failed cleanup
    never changes the result of the operation that requested it.
    """
    requested: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)
    error: ArtifactCleanupError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    @property
    def deleted(self) -> set[str]:
        if self.error is not None and not self.failed:
            return set()
        return self.requested - self.failed


class ArtifactStore(ABC):
    """Key-addressed blob store holding thumbnails and previews."""

    @abstractmethod
    def upload_from_urls(self, urls: list[str]) -> list[StoredArtifact]:
        """
        Fetches every URL and stores it under a fresh key. Results keep the
        order of `urls`. Either every URL is stored or UpstreamUnavailableError
        is raised and nothing is left behind.
        """

    @abstractmethod
    def delete_by_keys(self, keys: set[str]) -> CleanupResult:
        """Deletes the keys. Never raises."""

    @abstractmethod
    def generate_presigned_upload_url(self, key: str, content_type: str, expiration: int = 3600) -> str:
        """Returns a URL the client can PUT one object to, under `key`."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    def public_url(self, key: str) -> str:
        return f"{settings.R2_PUBLIC_URL.rstrip('/')}/{key}"

    def upload_from_url(self, url: str) -> StoredArtifact:
        return self.upload_from_urls([url])[0]


class R2ArtifactStore(ArtifactStore):
    """
    ArtifactStore backed by Cloudflare R2 (S3 compatible API).
    """
    def __init__(self, http: requests.Session | None = None):
        self.http = http or requests.Session()
        self.bucket_name = settings.R2_BUCKET_NAME
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        try:
            self.client = boto3.client(
                service_name='s3',
                endpoint_url=settings.R2_ENDPOINT_URL,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
                config=Config(signature_version='s3v4'),
                region_name='auto'  # For Cloudflare R2, 'auto' is standard
            )
            logger.info("Successfully created Cloudflare R2 client.")
        except (BotoCoreError, ValueError) as e:
            logger.error(f"Error connecting to R2: {e}")
            self.client = None

    def upload_from_urls(self, urls: list[str]) -> list[StoredArtifact]:
        if self.client is None:
            raise UpstreamUnavailableError("Artifact store is not configured.")

        stored: list[StoredArtifact] = []
        try:
            for url in urls:
                stored.append(self._upload_one(url))
        except (requests.RequestException, BotoCoreError, ClientError) as e:
            logger.error(f"Error storing artifact from {url}: {e}")
            if stored:
                # Remove what was already stored so nothing is orphaned
                cleanup = self.delete_by_keys({artifact.key for artifact in stored})
                if not cleanup.ok:
                    logger.warning(f"Could not remove partial upload {cleanup.requested}: {cleanup.error or cleanup.failed}")
            raise UpstreamUnavailableError("Failed to store artifact.") from e
        return stored

    def _upload_one(self, url: str) -> StoredArtifact:
        response = self.http.get(url, timeout=self.timeout)
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "application/octet-stream").split(";")[0].strip()
        key = f"{uuid.uuid4().hex}{self._extension(url, content_type)}"

        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=response.content,
            ContentType=content_type,
        )
        logger.info(f"Stored artifact {key} from {url}")
        return StoredArtifact(key=key, url=self.public_url(key))

    @staticmethod
    def _extension(url: str, content_type: str) -> str:
        path = urlparse(url).path
        if "." in path.rsplit("/", 1)[-1]:
            return "." + path.rsplit(".", 1)[-1].lower()
        return mimetypes.guess_extension(content_type) or ""

    def delete_by_keys(self, keys: set[str]) -> CleanupResult:
        result = CleanupResult(requested=set(keys))
        if not keys:
            return result
        if self.client is None:
            result.error = ArtifactCleanupError("Artifact store is not configured.")
            return result

        try:
            response = self.client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in sorted(keys)], "Quiet": True},
            )
        except (BotoCoreError, ClientError) as e:
            result.error = ArtifactCleanupError(str(e))
            return result

        result.failed = {error["Key"] for error in response.get("Errors", [])}
        if result.failed:
            result.error = ArtifactCleanupError(f"Failed to delete {len(result.failed)} artifact(s).")
        return result

    def generate_presigned_upload_url(self, key: str, content_type: str, expiration: int = 3600) -> str:
        """
        Signed URL for a direct HTTP PUT of one object. The client must send
        the same Content-Type it was signed with.
        """
        if self.client is None:
            raise UpstreamUnavailableError("Artifact store is not configured.")

        try:
            return self.client.generate_presigned_url(
                ClientMethod='put_object',
                Params={'Bucket': self.bucket_name, 'Key': key, 'ContentType': content_type},
                ExpiresIn=expiration
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error generating presigned URL for {key}: {e}")
            raise UpstreamUnavailableError("Could not create an upload URL at this time.") from e

    def exists(self, key: str) -> bool:
        if self.client is None:
            raise UpstreamUnavailableError("Artifact store is not configured.")

        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.error(f"Error checking artifact {key}: {e}")
            raise UpstreamUnavailableError("Failed to reach the artifact store.") from e
        except BotoCoreError as e:
            logger.error(f"Error checking artifact {key}: {e}")
            raise UpstreamUnavailableError("Failed to reach the artifact store.") from e
        return True
