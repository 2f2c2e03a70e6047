"""
Async client for the Qobuz JSON API with lazy secret validation, signed
requests and quality fallback for stream locations.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from qbz.exceptions import (
    ApiResponseError,
    AuthenticationError,
    BundleExtractionError,
    InvalidAppIdError,
    InvalidAppSecretError,
    NoQualityAvailableError,
)
from qbz.models.auth import BundleTokens, UserSession
from qbz.models.config import ClientConfig
from qbz.models.quality import Quality
from qbz.models.stream import StreamUrl
from qbz.web.bundle_fetcher import BundleFetcher

from . import endpoints
from .auth import SecretValidator, parse_login_response
from .signing import Md5RequestSigner, RequestSigner, get_timestamp

log = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"
WEB_PLAYER_URL = "https://play.qobuz.com"
FAVORITE_TYPES = ("album", "track", "artist")


class QobuzClient:
    """
    Async client for the Qobuz JSON API (v0.2).

    Authentication state lives in three independent cells: the bundle tokens
    (set by ``init``), the user session (set by ``login``) and the validated
    secret (set on the first signed request).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        signer: Optional[RequestSigner] = None,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: str = endpoints.BASE_URL,
        web_player_url: str = WEB_PLAYER_URL,
    ):
        """
        Initializes the API client.

        Args:
            config: Client settings; defaults are used when omitted.
            signer: Signature strategy for protected endpoints.
            session: An existing HTTP session to use. The client only closes
                sessions it created itself.
            base_url: Root of the JSON API.
            web_player_url: Origin serving the login page and bundle.
        """
        self.config = config or ClientConfig()
        self.base_url = base_url
        self.web_player_url = web_player_url

        self.tokens: Optional[BundleTokens] = None
        self.user_session: Optional[UserSession] = None

        self._signer: RequestSigner = signer or Md5RequestSigner()
        self._session = session
        self._owns_session = session is None
        self._validator = SecretValidator(self)
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> "QobuzClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session with a persistent cookie jar."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=16,
                limit_per_host=8,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(
                    total=self.config.request_timeout, connect=15
                ),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if the client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # Authentication state

    async def init(self) -> None:
        """Extracts the app id and candidate secrets from the web player."""
        if self.tokens is not None:
            return
        async with self._init_lock:
            if self.tokens is not None:
                return
            session = await self._initialize_session()
            bundle = await BundleFetcher.fetch(
                session,
                base_url=self.web_player_url,
                max_retries=self.config.bundle_retries,
            )
            self.tokens = bundle.extract()
            log.info(
                f"Client initialized with app id {self.tokens.app_id} "
                f"and {len(self.tokens.secrets)} candidate secret(s)."
            )

    @property
    def bundle_tokens(self) -> BundleTokens:
        if self.tokens is None:
            raise BundleExtractionError("Client not initialized; call init() first.")
        return self.tokens

    @property
    def app_id(self) -> str:
        return self.bundle_tokens.app_id

    @property
    def auth_token(self) -> str:
        if self.user_session is None:
            raise AuthenticationError("Not logged in.")
        return self.user_session.user_auth_token

    @property
    def is_logged_in(self) -> bool:
        return self.user_session is not None

    @property
    def has_validated_secret(self) -> bool:
        return self._validator.is_validated

    async def secret(self) -> str:
        """Returns the validated app secret, validating candidates on first use."""
        return await self._validator.secret()

    async def probe_secret(self, secret: str) -> int:
        """
        Sends a signed stream-location request for a known track using
        ``secret`` and returns the raw HTTP status.
        """
        session = await self._initialize_session()
        timestamp = get_timestamp()
        track_id = SecretValidator.TEST_TRACK_ID
        format_id = int(SecretValidator.TEST_FORMAT_ID)
        params = {
            "track_id": track_id,
            "format_id": format_id,
            "intent": "stream",
            "request_ts": timestamp,
            "request_sig": self._signer.sign_get_file_url(
                track_id, format_id, timestamp, secret
            ),
        }
        async with session.get(
            endpoints.build_url(endpoints.TRACK_GET_FILE_URL, self.base_url),
            params=params,
            headers=self._headers(),
        ) as r:
            return r.status

    async def login(self, email: str, password: str) -> UserSession:
        """
        Logs in with an email and (MD5-hashed) password and stores the session.
        """
        log.info(f"Authenticating as: {email}")
        payload = await self.api_call(
            endpoints.USER_LOGIN, form={"email": email, "password": password}
        )
        self.user_session = parse_login_response(payload)
        log.info(
            f"Logged in as {self.user_session.display_name} "
            f"({self.user_session.subscription_label})"
        )
        return self.user_session

    async def login_with_token(self, token: str) -> UserSession:
        """Authenticates with a pre-existing user token."""
        log.info("Authenticating with token...")
        try:
            user_info = await self.api_call(endpoints.USER_GET, auth_token=token)
        except ApiResponseError as e:
            if e.status == 401:
                raise AuthenticationError(
                    "The provided token is invalid or has expired."
                ) from e
            raise
        self.user_session = parse_login_response(
            {"user_auth_token": token, "user": user_info}
        )
        return self.user_session

    def logout(self) -> None:
        self.user_session = None

    # Transport

    def _headers(self, auth_token: Optional[str] = None) -> dict[str, str]:
        headers = {"X-App-Id": self.app_id}
        if auth_token:
            headers["X-User-Auth-Token"] = auth_token
        return headers

    async def api_call(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        form: Optional[dict[str, Any]] = None,
        auth_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Makes an API call and maps error statuses to client exceptions.

        A ``form`` turns the request into a form-encoded POST.
        """
        session = await self._initialize_session()
        url = endpoints.build_url(endpoint, self.base_url)
        headers = self._headers(auth_token)

        if form is not None:
            request = session.post(url, data=form, headers=headers)
        else:
            request = session.get(url, params=params or {}, headers=headers)

        async with request as r:
            if endpoint == endpoints.USER_LOGIN:
                if r.status == 401:
                    raise AuthenticationError("Invalid email or password.")
                if r.status == 400:
                    raise InvalidAppIdError(
                        f"The App ID {self.app_id} was rejected by the API."
                    )
            elif endpoint in endpoints.SIGNED_ENDPOINTS and r.status == 400:
                raise InvalidAppSecretError(
                    "The app secret is invalid or has expired."
                )

            if r.status != 200:
                raise ApiResponseError(
                    "Unexpected response status", endpoint=endpoint, status=r.status
                )
            return await r.json()

    @staticmethod
    def _require(payload: dict[str, Any], key: str, endpoint: str) -> Any:
        value = payload
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                raise ApiResponseError(
                    "Missing field in response", endpoint=endpoint, field=key
                )
            value = value[part]
        return value

    async def _search(self, endpoint: str, key: str, query: str, limit: int) -> dict[str, Any]:
        payload = await self.api_call(endpoint, params={"query": query, "limit": limit})
        return self._require(payload, key, endpoint)

    # Public API Methods

    async def search_albums(self, query: str, limit: int = 20) -> dict[str, Any]:
        return await self._search(endpoints.ALBUM_SEARCH, "albums", query, limit)

    async def search_tracks(self, query: str, limit: int = 20) -> dict[str, Any]:
        return await self._search(endpoints.TRACK_SEARCH, "tracks", query, limit)

    async def search_artists(self, query: str, limit: int = 20) -> dict[str, Any]:
        return await self._search(endpoints.ARTIST_SEARCH, "artists", query, limit)

    async def search_playlists(self, query: str, limit: int = 20) -> dict[str, Any]:
        return await self._search(endpoints.PLAYLIST_SEARCH, "playlists", query, limit)

    async def get_album(self, album_id: str) -> dict[str, Any]:
        return await self.api_call(endpoints.ALBUM_GET, params={"album_id": album_id})

    async def get_track(self, track_id: int) -> dict[str, Any]:
        return await self.api_call(endpoints.TRACK_GET, params={"track_id": track_id})

    async def get_artist(self, artist_id: int, with_albums: bool = False) -> dict[str, Any]:
        params: dict[str, Any] = {"artist_id": artist_id}
        if with_albums:
            params["extra"] = "albums"
        return await self.api_call(endpoints.ARTIST_GET, params=params)

    async def get_playlist(self, playlist_id: int, limit: int = 500) -> dict[str, Any]:
        return await self.api_call(
            endpoints.PLAYLIST_GET, params={"playlist_id": playlist_id, "limit": limit}
        )

    async def get_user_playlists(self) -> list[dict[str, Any]]:
        payload = await self.api_call(
            endpoints.PLAYLIST_GET_USER_PLAYLISTS, auth_token=self.auth_token
        )
        return self._require(
            payload, "playlists.items", endpoints.PLAYLIST_GET_USER_PLAYLISTS
        )

    async def get_stream_url(self, track_id: int, quality: Quality) -> StreamUrl:
        """Resolves the signed stream location of a track at one format."""
        auth_token = self.auth_token
        secret = await self.secret()
        timestamp = get_timestamp()
        format_id = int(quality)
        params = {
            "track_id": track_id,
            "format_id": format_id,
            "intent": "stream",
            "request_ts": timestamp,
            "request_sig": self._signer.sign_get_file_url(
                track_id, format_id, timestamp, secret
            ),
        }
        payload = await self.api_call(
            endpoints.TRACK_GET_FILE_URL, params=params, auth_token=auth_token
        )
        return StreamUrl.from_response(track_id, payload)

    async def get_stream_url_with_fallback(
        self, track_id: int, preferred: Quality
    ) -> StreamUrl:
        """
        Returns the first unrestricted stream location, starting at
        ``preferred`` and walking down towards lower fidelity.

        A rejected secret aborts immediately since no lower quality can help;
        any other failure, undecodable or malformed responses included, only
        skips the quality it happened on and is reported in the final error.
        """
        qualities = Quality.fallback_order()
        try:
            start_idx = qualities.index(preferred)
        except ValueError:
            start_idx = 0

        failures: dict[int, str] = {}
        for quality in qualities[start_idx:]:
            try:
                stream_url = await self.get_stream_url(track_id, quality)
            except InvalidAppSecretError:
                raise
            except Exception as e:
                failures[int(quality)] = _describe_failure(e)
                log.debug(f"Track {track_id} at format {int(quality)} failed: {e}")
                continue

            if not stream_url.has_restrictions:
                if int(quality) != int(preferred):
                    log.info(
                        f"Track {track_id}: falling back to {quality.label} "
                        f"(preferred format {int(preferred)})"
                    )
                return stream_url
            failures[int(quality)] = "restricted"
            log.debug(
                f"Track {track_id} restricted at format {int(quality)}: "
                f"{[r.code for r in stream_url.restrictions]}"
            )

        raise NoQualityAvailableError(track_id, failures)

    async def get_favorites(
        self, fav_type: str, limit: int = 50, offset: int = 0
    ) -> dict[str, Any]:
        """Returns a page of the user's favorites ("albums", "tracks" or "artists")."""
        auth_token = self.auth_token
        secret = await self.secret()
        timestamp = get_timestamp()
        params = {
            "type": fav_type,
            "limit": limit,
            "offset": offset,
            "request_ts": timestamp,
            "request_sig": self._signer.sign_get_favorites(timestamp, secret),
        }
        return await self.api_call(
            endpoints.FAVORITE_GET_USER_FAVORITES, params=params, auth_token=auth_token
        )

    async def add_favorite(self, fav_type: str, item_id: str) -> None:
        await self._change_favorite(endpoints.FAVORITE_CREATE, fav_type, item_id)

    async def remove_favorite(self, fav_type: str, item_id: str) -> None:
        await self._change_favorite(endpoints.FAVORITE_DELETE, fav_type, item_id)

    async def _change_favorite(self, endpoint: str, fav_type: str, item_id: str) -> None:
        if fav_type not in FAVORITE_TYPES:
            raise ValueError(
                f"Invalid favorite type '{fav_type}'. Must be one of {FAVORITE_TYPES}."
            )
        await self.api_call(
            endpoint, params={f"{fav_type}_ids": item_id}, auth_token=self.auth_token
        )


def _describe_failure(error: Exception) -> str:
    """Short reason recorded for a quality that could not be resolved."""
    if isinstance(error, ApiResponseError) and error.status is not None:
        return f"status={error.status}"
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__
