# studio_api/models/events.py

from pydantic import BaseModel, ConfigDict, Field

# =================================================================
# Mux webhook payloads. Only the fields we read are declared;
# everything else Mux sends is ignored.
# =================================================================

class WebhookEvent(BaseModel):
    """Envelope of every Mux webhook delivery"""
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict = Field(default_factory=dict)


class PlaybackId(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    policy: str | None = None


class AssetData(BaseModel):
    """data object of video.asset.* events"""
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    upload_id: str | None = None
    status: str | None = None
    playback_ids: list[PlaybackId] | None = None
    duration: float | None = None

    @property
    def first_playback_id(self) -> str | None:
        if not self.playback_ids:
            return None
        return self.playback_ids[0].id or None


class TrackData(BaseModel):
    """data object of video.asset.track.* events"""
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    asset_id: str | None = None
    status: str | None = None
