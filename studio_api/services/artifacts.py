# studio_api/services/artifacts.py

import logging
import uuid

from ..core.errors import NotFoundError
from ..models.video import ARTIFACT_COLUMNS, ArtifactKind
from .r2_service import ArtifactStore, CleanupResult, StoredArtifact
from .video_store import VideoStore

logger = logging.getLogger(__name__)


def artifact_fields(kind: ArtifactKind, artifact: StoredArtifact | None) -> dict:
    """Column values for one artifact. Key and URL are set or cleared together."""
    key_column, url_column = ARTIFACT_COLUMNS[kind]
    if artifact is None:
        return {key_column: None, url_column: None}
    return {key_column: artifact.key, url_column: artifact.url}


class ArtifactReconciler:
    """
    Keeps the thumbnail/preview keys of a video in sync with R2.

    The database write is authoritative: a new key is written before the key it
    replaces is deleted, and deleting a superseded key is best-effort. Writers
    are not serialized; the last database write wins. Before any delete the
    records are read again and keys any of them still references are skipped, so
    a key a reader can observe is never removed from the store.
    """

    def __init__(self, videos: VideoStore, store: ArtifactStore):
        self.videos = videos
        self.store = store

    def replace(self, video_id: uuid.UUID, kind: ArtifactKind, source_url: str) -> StoredArtifact:
        """Fetches `source_url` into the store and makes it the video's `kind` artifact."""
        return self.replace_batch(video_id, {kind: source_url})[kind]

    def replace_batch(
        self,
        video_id: uuid.UUID,
        sources: dict[ArtifactKind, str],
        extra_fields: dict | None = None,
    ) -> dict[ArtifactKind, StoredArtifact]:
        kinds = list(sources)
        uploaded = self.store.upload_from_urls([sources[kind] for kind in kinds])
        return self.adopt(video_id, dict(zip(kinds, uploaded)), extra_fields)

    def adopt(
        self,
        video_id: uuid.UUID,
        artifacts: dict[ArtifactKind, StoredArtifact],
        extra_fields: dict | None = None,
    ) -> dict[ArtifactKind, StoredArtifact]:
        """Points the record at objects already in the store and cleans up what they replace."""
        previous = self.videos.current_keys(video_id)

        values = dict(extra_fields or {})
        for kind, artifact in artifacts.items():
            values.update(artifact_fields(kind, artifact))

        if previous is None or not self.videos.update(video_id, values):
            # Video is gone, the new objects would be orphans
            self._cleanup(video_id, {artifact.key for artifact in artifacts.values()})
            raise NotFoundError()

        new_keys = {artifact.key for artifact in artifacts.values()}
        superseded = {
            previous[kind] for kind in artifacts
            if previous[kind] and previous[kind] not in new_keys
        }
        logger.info(f"Video {video_id}: stored {', '.join(kind.value for kind in artifacts)}")
        self._cleanup(video_id, superseded)
        return artifacts

    def clear_and_restore(self, video_id: uuid.UUID, kind: ArtifactKind, source_url: str) -> StoredArtifact:
        """
        Swaps the current `kind` artifact for one regenerated from `source_url`.

        The new object is stored before the record is touched, so if regenerating
        fails the previous key and URL are left in place.
        """
        restored = self.replace(video_id, kind, source_url)
        logger.info(f"Video {video_id}: restored {kind.value}")
        return restored

    def delete(self, video_id: uuid.UUID, kinds: set[ArtifactKind]) -> CleanupResult:
        """Clears the `kinds` artifacts of the video and deletes them from the store."""
        previous = self.videos.current_keys(video_id)
        if previous is None:
            raise NotFoundError()

        stale = {previous[kind] for kind in kinds if previous[kind]}
        if not stale:
            return CleanupResult()

        values = {}
        for kind in kinds:
            values.update(artifact_fields(kind, None))
        self.videos.update(video_id, values)
        return self._cleanup(video_id, stale)

    def _cleanup(self, video_id: uuid.UUID, keys: set[str]) -> CleanupResult:
        if not keys:
            return CleanupResult()

        referenced = self.videos.referenced_keys(keys)
        targets = keys - referenced
        if referenced:
            logger.info(f"Video {video_id}: keeping {referenced}, still referenced by a video record")
        if not targets:
            return CleanupResult()

        result = self.store.delete_by_keys(targets)
        if not result.ok:
            logger.warning(f"Video {video_id}: could not delete stale artifacts {result.failed or targets}: {result.error}")
        return result
