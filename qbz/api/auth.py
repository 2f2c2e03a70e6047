"""
Handles app secret validation and parsing of login responses.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from qbz.exceptions import AuthenticationError, InvalidAppSecretError
from qbz.models.auth import UserSession
from qbz.models.quality import Quality

if TYPE_CHECKING:
    from .client import QobuzClient

log = logging.getLogger(__name__)

_BAD_REQUEST = 400


class SecretValidator:
    """
    Finds, once per client lifetime, the candidate secret the backend honors.
    """

    # A known public and valid track, probed at the cheapest format
    TEST_TRACK_ID = 5966783
    TEST_FORMAT_ID = Quality.MP3

    def __init__(self, api_client: "QobuzClient"):
        """
        Initializes the validator.

        Args:
            api_client: A reference to the main QobuzClient instance, used for
                the candidate list and to issue probe requests.
        """
        self._api_client = api_client
        self._secret: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def is_validated(self) -> bool:
        return self._secret is not None

    async def secret(self) -> str:
        """
        Returns the validated secret, probing candidates on first use.

        Concurrent first callers share a single validation pass. Candidates are
        probed in extraction order and the first one that does not get a
        "400 Bad Request" wins. Any other status counts as accepted, since a
        quota or app id problem must not be mistaken for a wrong secret.
        """
        if self._secret is not None:
            return self._secret

        async with self._lock:
            if self._secret is not None:
                return self._secret

            candidates = self._api_client.bundle_tokens.secrets
            log.debug(f"Testing {len(candidates)} potential app secrets...")

            for candidate in candidates:
                status = await self._api_client.probe_secret(candidate)
                if status != _BAD_REQUEST:
                    self._secret = candidate
                    log.debug(f"Valid secret found: {candidate[:8]}... (status {status})")
                    return candidate
                log.debug(f"Secret {candidate[:8]}... rejected by backend.")

        raise InvalidAppSecretError(
            f"None of the {len(candidates)} candidate app secrets was accepted."
        )


def parse_login_response(payload: Any) -> UserSession:
    """
    Builds a UserSession from a ``user/login`` response body.

    Raises:
        AuthenticationError: If the token or user object is missing.
    """
    if not isinstance(payload, dict):
        raise AuthenticationError("Malformed login response: expected an object.")

    token = payload.get("user_auth_token")
    user = payload.get("user")
    if not token or not isinstance(user, dict):
        raise AuthenticationError(
            "Malformed login response: missing 'user_auth_token' or 'user'."
        )

    return UserSession(
        user_auth_token=str(token),
        display_name=_display_name(user),
        subscription_label=_subscription_label(user),
    )


def _display_name(user: dict[str, Any]) -> str:
    for key in ("display_name", "login", "email"):
        if user.get(key):
            return str(user[key])
    return "Unknown User"


def _subscription_label(user: dict[str, Any]) -> str:
    credential = user.get("credential") or {}
    parameters = credential.get("parameters") or {}
    return str(parameters.get("short_label") or credential.get("label") or "Free")
