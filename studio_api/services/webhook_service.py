# studio_api/services/webhook_service.py

import hashlib
import hmac
import logging
import math
import time

from pydantic import ValidationError

from ..core.errors import AuthenticationError, MalformedEventError, NotFoundError
from ..models.events import AssetData, TrackData, WebhookEvent
from ..models.video import ArtifactKind
from .artifacts import ArtifactReconciler
from .mux_service import preview_source_url, thumbnail_source_url
from .video_service import VideoService
from .video_store import VideoStore

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Mux-Signature"


def verify_signature(body: bytes, signature_header: str | None, secret: str, tolerance_seconds: int = 300, now: float | None = None) -> None:
    """
    Checks a Mux-Signature header ("t=<timestamp>,v1=<hex digest>") against
    the raw request body. The digest is HMAC-SHA256 over "<timestamp>.<body>".
    Raises AuthenticationError when the header is missing, stale or wrong.
    """
    if not signature_header:
        raise AuthenticationError("No signature found.")

    timestamp = None
    signatures = []
    for part in signature_header.split(","):
        name, _, value = part.strip().partition("=")
        if name == "t":
            timestamp = value
        elif name == "v1" and value:
            signatures.append(value)

    if not timestamp or not timestamp.isdigit() or not signatures:
        raise AuthenticationError("Unable to parse signature header.")

    current = time.time() if now is None else now
    if tolerance_seconds and abs(current - int(timestamp)) > tolerance_seconds:
        raise AuthenticationError("Signature timestamp is outside the tolerance window.")

    expected = hmac.new(secret.encode("utf-8"), timestamp.encode("utf-8") + b"." + body, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, signature) for signature in signatures):
        raise AuthenticationError("Signature does not match payload.")


def parse_event(body: bytes) -> WebhookEvent:
    try:
        return WebhookEvent.model_validate_json(body)
    except ValidationError as e:
        raise MalformedEventError("Webhook body is not a valid event.") from e


def duration_ms(seconds: float | None) -> int:
    if not seconds:
        return 0
    # Round half up
    return int(math.floor(seconds * 1000 + 0.5))


class WebhookDispatcher:
    """
    Routes Mux events to their handler by exact type.

    Mux adds event types over time; any type without a handler is
    acknowledged and ignored.
    """
    def __init__(self, videos: VideoStore, video_service: VideoService, artifacts: ArtifactReconciler):
        self.videos = videos
        self.video_service = video_service
        self.artifacts = artifacts
        self.handlers = {
            "video.asset.created": self.handle_asset_created,
            "video.asset.ready": self.handle_asset_ready,
            "video.asset.errored": self.handle_asset_errored,
            "video.asset.deleted": self.handle_asset_deleted,
            "video.asset.track.ready": self.handle_track_ready,
        }

    def dispatch(self, event: WebhookEvent) -> bool:
        """Returns False when the event type is not handled."""
        handler = self.handlers.get(event.type)
        if handler is None:
            logger.info(f"Ignoring Mux event {event.type}")
            return False
        handler(event.data)
        return True

    def handle_asset_created(self, payload: dict) -> None:
        data = _parse(AssetData, payload)
        if not data.upload_id:
            raise MalformedEventError("No upload ID found.")

        updated = self.videos.record_asset_created(data.upload_id, data.id, data.status)
        if data.id and updated < len(self.videos.find_by_upload_id(data.upload_id)):
            logger.warning(f"Upload {data.upload_id}: asset {data.id} not linked to video(s) already bound to another asset")
        logger.info(f"Upload {data.upload_id}: asset {data.id} created ({updated} video(s))")

    def handle_asset_ready(self, payload: dict) -> None:
        data = _parse(AssetData, payload)
        if not data.upload_id:
            raise MalformedEventError("No upload ID found.")
        playback_id = data.first_playback_id
        if not playback_id:
            raise MalformedEventError("No playback ID found.")

        sources = {
            ArtifactKind.THUMBNAIL: thumbnail_source_url(playback_id),
            ArtifactKind.PREVIEW: preview_source_url(playback_id),
        }
        fields = {
            "mux_status": data.status,
            "mux_playback_id": playback_id,
            "duration": duration_ms(data.duration),
        }
        if data.id:
            fields["mux_asset_id"] = data.id

        video_ids = []
        for video in self.videos.find_by_upload_id(data.upload_id):
            if data.id and video.mux_asset_id and video.mux_asset_id != data.id:
                logger.warning(f"Video {video.id}: ignoring ready asset {data.id}, already bound to {video.mux_asset_id}")
                continue
            video_ids.append(video.id)
        if not video_ids:
            logger.info(f"Upload {data.upload_id}: no video for ready asset, skipping")
            return
        for video_id in video_ids:
            try:
                self.artifacts.replace_batch(video_id, sources, extra_fields=fields)
            except NotFoundError:
                logger.info(f"Video {video_id} was deleted while its artifacts were stored")
                continue
            logger.info(f"Video {video_id}: asset ready with playback {playback_id}")

    def handle_asset_errored(self, payload: dict) -> None:
        data = _parse(AssetData, payload)
        if not data.upload_id:
            raise MalformedEventError("No upload ID found.")

        updated = self.videos.update_by_upload_id(data.upload_id, {"mux_status": data.status})
        logger.info(f"Upload {data.upload_id}: asset errored ({updated} video(s))")

    def handle_asset_deleted(self, payload: dict) -> None:
        data = _parse(AssetData, payload)
        if not data.upload_id:
            raise MalformedEventError("No upload ID found.")

        self.video_service.delete_by_upload_id(data.upload_id)

    def handle_track_ready(self, payload: dict) -> None:
        data = _parse(TrackData, payload)
        if not data.asset_id:
            logger.warning(f"Track {data.id} ready without an asset ID, skipping")
            return

        updated = self.videos.update_by_asset_id(data.asset_id, {
            "mux_track_id": data.id,
            "mux_track_status": data.status,
        })
        logger.info(f"Asset {data.asset_id}: track {data.id} {data.status} ({updated} video(s))")


def _parse(model, payload: dict):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedEventError(f"Invalid event data: {e.error_count()} error(s).") from e
