"""
Error taxonomy shared by the stores, services and HTTP layer.
"""

from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Base class for errors that map onto a specific HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """A required field is missing/empty or a value cannot be parsed."""

    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class StoreUnavailableError(ApiError):
    """The document store has no live connection."""

    status_code = 503

    def __init__(
        self,
        message: str = "Database unavailable",
        details: Optional[str] = "Database connection is not ready. Please try again later.",
    ):
        super().__init__(message, details)


class UploadRejectedError(ApiError):
    """The uploaded file is not an accepted image or is too large."""

    status_code = 400


class AssetUploadError(ApiError):
    """The asset host failed while storing an upload."""

    status_code = 500
