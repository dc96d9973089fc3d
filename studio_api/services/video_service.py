# studio_api/services/video_service.py

import logging
import uuid
from urllib.parse import urlparse

from ..core.config import settings
from ..core.errors import NotFoundError, PreconditionError, UpstreamUnavailableError
from ..models.video import ARTIFACT_COLUMNS, MUX_STATUS_WAITING, ArtifactKind, Video
from .artifacts import ArtifactReconciler
from .mux_service import ProviderUpload, VideoProvider, preview_source_url, thumbnail_source_url
from .r2_service import ArtifactStore, StoredArtifact, UploadTarget
from .video_store import VideoStore

logger = logging.getLogger(__name__)

SOURCE_URL_BUILDERS = {
    ArtifactKind.THUMBNAIL: thumbnail_source_url,
    ArtifactKind.PREVIEW: preview_source_url,
}

EDITABLE_FIELDS = ("title", "description", "category_id", "visibility")
REQUIRED_FIELDS = ("title", "visibility")

THUMBNAIL_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def thumbnail_upload_prefix(video_id: uuid.UUID) -> str:
    return f"videos/{video_id}/thumbnails/"


class VideoService:
    """
    Owner-scoped operations on videos: requesting an upload, editing,
    replacing or restoring artifacts, and deleting.
    """
    def __init__(self, videos: VideoStore, store: ArtifactStore, provider: VideoProvider):
        self.videos = videos
        self.store = store
        self.provider = provider
        self.artifacts = ArtifactReconciler(videos, store)

    def create_upload(self, user_id: uuid.UUID) -> tuple[Video, ProviderUpload]:
        """
        Asks Mux for a direct upload URL, then records the video.
        The row is only inserted once Mux has handed out the upload id.
        """
        upload = self.provider.create_upload({
            "new_asset_settings": {
                "passthrough": str(user_id),
                "playback_policy": ["public"],
                "input": [{
                    "generated_subtitles": [{
                        "language_code": settings.SUBTITLE_LANGUAGE_CODE,
                        "name": settings.SUBTITLE_LANGUAGE_NAME,
                    }],
                }],
            },
            "cors_origin": settings.MUX_UPLOAD_CORS_ORIGIN,
        })

        video = self.videos.add(Video(
            user_id=user_id,
            title="Untitled",
            mux_status=MUX_STATUS_WAITING,
            mux_upload_id=upload.id,
        ))
        logger.info(f"Created video {video.id} for upload {upload.id}")
        return video, upload

    def get(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        video = self.videos.get_owned(video_id, user_id)
        if video is None:
            raise NotFoundError()
        return video

    def update_metadata(self, video_id: uuid.UUID, user_id: uuid.UUID, changes: dict) -> Video:
        values = {name: value for name, value in changes.items() if name in EDITABLE_FIELDS}
        # Required columns: null means "leave unchanged"
        for name in REQUIRED_FIELDS:
            if name in values and values[name] is None:
                del values[name]
        if not self.videos.update(video_id, values, user_id=user_id):
            raise NotFoundError()
        return self.get(video_id, user_id)

    # --- artifacts ---

    def restore_artifact(self, video_id: uuid.UUID, user_id: uuid.UUID, kind: ArtifactKind) -> Video:
        video = self.get(video_id, user_id)
        if not video.mux_playback_id:
            raise PreconditionError("The video has not finished processing yet.")

        self.artifacts.clear_and_restore(video_id, kind, SOURCE_URL_BUILDERS[kind](video.mux_playback_id))
        return self.get(video_id, user_id)

    def prepare_thumbnail_upload(
        self, video_id: uuid.UUID, user_id: uuid.UUID, content_type: str = "image/jpeg"
    ) -> UploadTarget:
        """
        Clears the current thumbnail and hands out a presigned PUT URL for its
        replacement. The key is chosen here, under the video's own prefix.
        """
        extension = THUMBNAIL_CONTENT_TYPES.get(content_type)
        if extension is None:
            raise PreconditionError(f"Unsupported thumbnail type {content_type}.")
        self.get(video_id, user_id)
        self.artifacts.delete(video_id, {ArtifactKind.THUMBNAIL})

        key = f"{thumbnail_upload_prefix(video_id)}{uuid.uuid4().hex}{extension}"
        upload_url = self.store.generate_presigned_upload_url(
            key, content_type, expiration=settings.THUMBNAIL_UPLOAD_URL_EXPIRATION_SECONDS
        )
        return UploadTarget(key=key, upload_url=upload_url)

    def complete_thumbnail_upload(self, video_id: uuid.UUID, user_id: uuid.UUID, key: str) -> Video:
        self.get(video_id, user_id)
        prefix = thumbnail_upload_prefix(video_id)
        name = key[len(prefix):] if key.startswith(prefix) else ""
        if not name or "/" in name:
            raise PreconditionError("The uploaded thumbnail does not belong to this video.")
        if self.videos.referenced_keys({key}, exclude_video_id=video_id):
            raise PreconditionError("The uploaded thumbnail does not belong to this video.")
        if not self.store.exists(key):
            raise PreconditionError("The uploaded thumbnail was not found.")

        # The Mux webhook may have written a thumbnail since the upload was prepared;
        # adopt() removes whatever the record points at now.
        uploaded = StoredArtifact(key=key, url=self.store.public_url(key))
        self.artifacts.adopt(video_id, {ArtifactKind.THUMBNAIL: uploaded})
        return self.get(video_id, user_id)

    def replace_thumbnail_from_url(self, video_id: uuid.UUID, user_id: uuid.UUID, source_url: str) -> Video:
        source = urlparse(source_url)
        if source.scheme != "https" or source.hostname not in settings.THUMBNAIL_GENERATION_HOSTS:
            raise PreconditionError("Generated thumbnails can only be fetched from an allowed host.")
        self.get(video_id, user_id)
        self.artifacts.replace(video_id, ArtifactKind.THUMBNAIL, source_url)
        return self.get(video_id, user_id)

    # --- deletion ---

    def delete_for_owner(self, video_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """
        Deletes the owner's video with its artifacts and Mux asset.
        The row is removed even if R2 or Mux cannot be reached.
        """
        video = self.get(video_id, user_id)
        asset_id = video.mux_asset_id

        self._delete_stored_artifacts([video])

        if asset_id:
            try:
                self.provider.delete_asset(asset_id)
            except UpstreamUnavailableError as e:
                logger.warning(f"Video {video_id}: Mux asset {asset_id} was not deleted: {e}")

        self.videos.delete(video_id)
        logger.info(f"Deleted video {video_id}")

    def delete_by_upload_id(self, upload_id: str) -> int:
        """Removes the videos of an upload Mux has deleted. Mux already dropped the asset."""
        videos = self.videos.find_by_upload_id(upload_id)
        if not videos:
            return 0

        self._delete_stored_artifacts(videos)
        deleted = self.videos.delete_by_upload_id(upload_id)
        logger.info(f"Deleted {deleted} video(s) for Mux upload {upload_id}")
        return deleted

    def _delete_stored_artifacts(self, videos: list[Video]) -> None:
        keys = {
            getattr(video, key_column)
            for video in videos
            for key_column, _ in ARTIFACT_COLUMNS.values()
            if getattr(video, key_column)
        }
        if not keys:
            return
        result = self.store.delete_by_keys(keys)
        if not result.ok:
            logger.warning(f"Could not delete artifacts {result.failed or keys}: {result.error}")
