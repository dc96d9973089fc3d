# studio_api/core/errors.py

from fastapi import status


class StudioError(Exception):
    """Base class for errors raised by the studio services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "An internal server error occurred."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(StudioError):
    """The webhook request could not be proven to come from Mux."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid webhook signature."


class MalformedEventError(StudioError):
    """The event is missing a field it cannot be processed without.

    Redelivering the same payload will never succeed.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Malformed webhook event."


class UpstreamUnavailableError(StudioError):
    """Mux or the object store could not be reached. Safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "An upstream service is unavailable. Please try again later."


class NotFoundError(StudioError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Video not found or you do not have permission to access it."


class PreconditionError(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The video is not ready for this operation."


class ArtifactCleanupError(StudioError):
    """Deleting stored artifacts failed.

    Never raised out of an operation; it travels inside a CleanupResult so the
    caller can log it after the database write has already succeeded.
    """

    default_detail = "Failed to delete stored artifacts."
