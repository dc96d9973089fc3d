# studio_api/services/mux_service.py

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests

from ..core.config import settings
from ..core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderUpload:
    """A direct upload target created by Mux."""
    id: str
    url: str


class VideoProvider(ABC):
    """The video processing provider as seen by the upload broker and deletion coordinator."""

    @abstractmethod
    def create_upload(self, upload_settings: dict) -> ProviderUpload:
        ...

    @abstractmethod
    def delete_asset(self, asset_id: str) -> None:
        ...


def thumbnail_source_url(playback_id: str) -> str:
    return f"{settings.MUX_IMAGE_BASE_URL}/{playback_id}/thumbnail.webp?width=1000&height=562&fit_mode=crop"


def preview_source_url(playback_id: str) -> str:
    return f"{settings.MUX_IMAGE_BASE_URL}/{playback_id}/animated.gif"


class MuxService(VideoProvider):
    """
    Thin client for the Mux Video REST API.
    """
    def __init__(self, http: requests.Session | None = None):
        self.http = http or requests.Session()
        self.http.auth = (settings.MUX_TOKEN_ID, settings.MUX_TOKEN_SECRET)
        self.base_url = settings.MUX_API_BASE_URL.rstrip("/")
        self.timeout = settings.HTTP_TIMEOUT_SECONDS

    def create_upload(self, upload_settings: dict) -> ProviderUpload:
        try:
            response = self.http.post(
                f"{self.base_url}/video/v1/uploads",
                json=upload_settings,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()["data"]
            return ProviderUpload(id=data["id"], url=data["url"])
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(f"Error creating Mux upload: {e}")
            raise UpstreamUnavailableError("Could not create an upload URL at this time. Please try again later.") from e

    def delete_asset(self, asset_id: str) -> None:
        try:
            response = self.http.delete(
                f"{self.base_url}/video/v1/assets/{asset_id}",
                timeout=self.timeout,
            )
            if response.status_code == 404:
                logger.info(f"Mux asset {asset_id} was already deleted")
                return
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error deleting Mux asset {asset_id}: {e}")
            raise UpstreamUnavailableError("Failed to delete Mux asset.") from e
        logger.info(f"Deleted Mux asset {asset_id}")
