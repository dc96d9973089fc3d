# studio_api/api/dependencies.py

import uuid
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from studio_api.services.artifacts import ArtifactReconciler
from studio_api.services.mux_service import MuxService, VideoProvider
from studio_api.services.r2_service import ArtifactStore, R2ArtifactStore
from studio_api.services.video_service import VideoService
from studio_api.services.video_store import VideoStore
from studio_api.services.webhook_service import WebhookDispatcher
from studio_api.shared.db.database import get_db_session


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> uuid.UUID:
    """
    The caller is authenticated upstream; the gateway forwards the user id.
    """
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")


@lru_cache()
def get_artifact_store() -> ArtifactStore:
    return R2ArtifactStore()


@lru_cache()
def get_video_provider() -> VideoProvider:
    return MuxService()


def get_video_store(db: Session = Depends(get_db_session)) -> VideoStore:
    return VideoStore(db)


def get_video_service(
    videos: VideoStore = Depends(get_video_store),
    store: ArtifactStore = Depends(get_artifact_store),
    provider: VideoProvider = Depends(get_video_provider),
) -> VideoService:
    return VideoService(videos, store, provider)


def get_webhook_dispatcher(
    videos: VideoStore = Depends(get_video_store),
    video_service: VideoService = Depends(get_video_service),
) -> WebhookDispatcher:
    return WebhookDispatcher(videos, video_service, video_service.artifacts)
