# studio_api/models/video.py

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, Uuid, Enum as SAEnum
from studio_api.shared.db.database import Base

class VideoVisibility(str, enum.Enum):
    """Who can watch the video."""
    PUBLIC = "public"
    PRIVATE = "private"

class ArtifactKind(str, enum.Enum):
    """Derived files stored in R2 for a video."""
    THUMBNAIL = "thumbnail"
    PREVIEW = "preview"

# Mux reports its own status strings; only the ones we set or compare against are named here.
MUX_STATUS_WAITING = "waiting"
MUX_STATUS_READY = "ready"
MUX_STATUS_ERRORED = "errored"
# A late asset.created must not move a video back out of these
FINAL_MUX_STATUSES = (MUX_STATUS_READY, MUX_STATUS_ERRORED)

class Video(Base):
    """
    Represents the Video model in our database.
    Tracks the Mux processing state of an uploaded video and the R2 keys of
    its generated thumbnail and preview.
    """
    __tablename__ = "videos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    title = Column(String, nullable=False, default="Untitled")
    description = Column(Text, nullable=True)
    category_id = Column(Uuid(as_uuid=True), nullable=True)
    visibility = Column(SAEnum(VideoVisibility, name="video_visibility_enum"), nullable=False, default=VideoVisibility.PRIVATE)

    # Mux correlation and processing state, written by webhook events
    mux_status = Column(String, nullable=True)
    mux_upload_id = Column(String, unique=True, nullable=True)
    mux_asset_id = Column(String, unique=True, nullable=True)
    mux_playback_id = Column(String, unique=True, nullable=True)
    mux_track_id = Column(String, unique=True, nullable=True)
    mux_track_status = Column(String, nullable=True)

    # Key and URL of each artifact are always written together
    thumbnail_url = Column(String, nullable=True)
    thumbnail_key = Column(String, nullable=True)
    preview_url = Column(String, nullable=True)
    preview_key = Column(String, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # milliseconds

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

# Column pair (key, url) for every artifact kind
ARTIFACT_COLUMNS = {
    ArtifactKind.THUMBNAIL: ("thumbnail_key", "thumbnail_url"),
    ArtifactKind.PREVIEW: ("preview_key", "preview_url"),
}
