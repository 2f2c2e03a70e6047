"""
Defines custom exceptions for the client layer to allow for more specific error
handling. Every error's string form carries the detail needed to act on it.
"""

from typing import Mapping, Optional


class QbzError(Exception):
    """Base exception for all application-specific errors."""


class BundleExtractionError(QbzError):
    """Raised when the web player bundle cannot be fetched or parsed."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        if stage:
            message = f"[{stage}] {message}"
        super().__init__(message)


class AuthenticationError(QbzError):
    """Raised when user login fails due to invalid credentials or token."""


class InvalidAppIdError(QbzError):
    """Raised when the extracted App ID is rejected by the Qobuz API."""


class InvalidAppSecretError(QbzError):
    """
    Raised when no candidate secret is accepted, or when a previously accepted
    secret is rejected later (usually a sign of secret rotation).
    """


class ApiResponseError(QbzError):
    """Raised for an unexpected status code or a missing field in a response."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
        field: Optional[str] = None,
    ):
        self.endpoint = endpoint
        self.status = status
        self.field = field
        details = []
        if endpoint:
            details.append(f"endpoint={endpoint}")
        if status is not None:
            details.append(f"status={status}")
        if field:
            details.append(f"field={field}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class NoQualityAvailableError(QbzError):
    """
    Raised when every quality in the fallback chain failed or was restricted.
    ``failures`` maps each tried format id to what went wrong with it.
    """

    def __init__(self, track_id: int, failures: Optional[Mapping[int, str]] = None):
        self.track_id = track_id
        self.failures = dict(failures or {})
        self.tried = list(self.failures)
        tried_str = (
            ", ".join(f"{q} ({reason})" for q, reason in self.failures.items()) or "none"
        )
        super().__init__(
            f"No streamable quality available for track {track_id} "
            f"(tried format ids: {tried_str})."
        )


class DownloadError(QbzError):
    """Raised when an audio payload cannot be downloaded."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        if status is not None:
            message = f"{message} (HTTP {status})"
        super().__init__(message)


class ConfigurationError(QbzError):
    """Raised for issues related to configuration loading or validation."""
