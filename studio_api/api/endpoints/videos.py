# studio_api/api/endpoints/videos.py

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from studio_api.api.dependencies import get_current_user_id, get_video_service
from studio_api.models.video import ArtifactKind, VideoVisibility
from studio_api.services.video_service import VideoService

router = APIRouter()

# --- Pydantic Schemas for Request/Response ---
class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None = None
    category_id: uuid.UUID | None = None
    visibility: VideoVisibility
    mux_status: str | None = None
    mux_upload_id: str | None = None
    mux_asset_id: str | None = None
    mux_playback_id: str | None = None
    mux_track_id: str | None = None
    mux_track_status: str | None = None
    thumbnail_url: str | None = None
    thumbnail_key: str | None = None
    preview_url: str | None = None
    preview_key: str | None = None
    duration: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

class VideoUploadResponse(BaseModel):
    video: VideoResponse
    upload_url: str

class VideoUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    category_id: uuid.UUID | None = None
    visibility: VideoVisibility | None = None

class ThumbnailPrepareRequest(BaseModel):
    content_type: str = "image/jpeg"

class ThumbnailUploadTargetResponse(BaseModel):
    key: str
    upload_url: str

class ThumbnailUploadRequest(BaseModel):
    """Key handed out by /thumbnail/prepare, after the image was PUT to its URL"""
    key: str = Field(..., min_length=1)

class ThumbnailGenerateRequest(BaseModel):
    """Result of a thumbnail generation job"""
    source_url: str = Field(..., min_length=1)


# --- Endpoints ---
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=VideoUploadResponse,
    summary="Request a URL to upload a video",
    description="Creates a Mux direct upload and a video record waiting for it. The client pushes the file straight to the returned URL.",
)
def create_video(
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    video, upload = service.create_upload(user_id)
    return VideoUploadResponse(video=VideoResponse.model_validate(video), upload_url=upload.url)


@router.get("/{video_id}", response_model=VideoResponse)
def get_video(
    video_id: uuid.UUID,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return service.get(video_id, user_id)


@router.patch("/{video_id}", response_model=VideoResponse, summary="Edit title, description, category or visibility")
def update_video(
    video_id: uuid.UUID,
    request_data: VideoUpdateRequest,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return service.update_metadata(video_id, user_id, request_data.model_dump(exclude_unset=True))


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a video",
    description="Removes the stored thumbnail and preview, the Mux asset and the video record. The record is removed even when R2 or Mux cannot be reached.",
)
def delete_video(
    video_id: uuid.UUID,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    service.delete_for_owner(video_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{video_id}/restore/{kind}", response_model=VideoResponse, summary="Regenerate a thumbnail or preview from Mux")
def restore_artifact(
    video_id: uuid.UUID,
    kind: ArtifactKind,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return service.restore_artifact(video_id, user_id, kind)


@router.post(
    "/{video_id}/thumbnail/prepare",
    response_model=ThumbnailUploadTargetResponse,
    summary="Get a URL to upload a custom thumbnail to",
    description="Clears the current thumbnail and returns a presigned PUT URL. Send the returned key to /thumbnail once the upload has finished.",
)
def prepare_thumbnail_upload(
    video_id: uuid.UUID,
    request_data: ThumbnailPrepareRequest | None = None,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    content_type = request_data.content_type if request_data else "image/jpeg"
    target = service.prepare_thumbnail_upload(video_id, user_id, content_type)
    return ThumbnailUploadTargetResponse(key=target.key, upload_url=target.upload_url)


@router.post("/{video_id}/thumbnail", response_model=VideoResponse, summary="Use an uploaded image as the thumbnail")
def complete_thumbnail_upload(
    video_id: uuid.UUID,
    request_data: ThumbnailUploadRequest,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return service.complete_thumbnail_upload(video_id, user_id, request_data.key)


@router.post("/{video_id}/thumbnail/generate", response_model=VideoResponse, summary="Store a generated thumbnail")
def generate_thumbnail(
    video_id: uuid.UUID,
    request_data: ThumbnailGenerateRequest,
    service: VideoService = Depends(get_video_service),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return service.replace_thumbnail_from_url(video_id, user_id, request_data.source_url)
