"""
Fetches and parses the Qobuz web player's JavaScript bundle to extract
the app_id and app_secrets required for API authentication.

Parsing is split into small stages (bundle path, app id, secrets) so each
can be patched on its own when the web player ships a new bundle revision.
"""

import asyncio
import base64
import binascii
import logging
import re
from typing import Callable, Optional

import aiohttp

from qbz.exceptions import BundleExtractionError
from qbz.models.auth import BundleTokens

log = logging.getLogger(__name__)

# Pre-compiled regex for performance
_BASE_URL = "https://play.qobuz.com"
_BUNDLE_URL_REGEX = re.compile(
    r'<script src="(/resources/\d+\.\d+\.\d+-[a-z]\d{3}/bundle\.js)"></script>'
)
_APP_ID_REGEX = re.compile(r'production:\{api:\{appId:"(?P<app_id>\d{9})"')
_SEED_TIMEZONE_REGEX = re.compile(
    r'[a-z]\.initialSeed\("(?P<seed>[\w=]+)",window\.utimezone\.(?P<timezone>[a-z]+)\)'
)
# Two bundle generations have been seen in the wild for the info/extras blocks
_INFO_EXTRAS_REGEXES = (
    re.compile(
        r'"(?P<timezone>[a-z]+)":\{info:"(?P<info>[\w=]+)",extras:"(?P<extras>[\w=]+)"'
    ),
    re.compile(
        r'name:"\w+/(?P<timezone>[A-Za-z]+)",'
        r'info:"(?P<info>[\w=]+)",extras:"(?P<extras>[\w=]+)"'
    ),
)
_SIMPLE_SECRET_REGEX = re.compile(r'appSecret:"([a-f0-9]{32})"')

# The last 44 characters of a combined fragment are a salt/checksum
_SECRET_SUFFIX_LENGTH = 44


def extract_bundle_url(page_html: str) -> str:
    """Finds the relative path of the versioned bundle on the login page."""
    match = _BUNDLE_URL_REGEX.search(page_html)
    if not match:
        raise BundleExtractionError(
            "Could not find bundle URL on the Qobuz login page.", stage="bundle_url"
        )
    return match.group(1)


def extract_app_id(bundle_text: str) -> str:
    """Extracts the 9-digit application ID from the bundle content."""
    match = _APP_ID_REGEX.search(bundle_text)
    if not match:
        raise BundleExtractionError(
            "Could not find app_id in the JavaScript bundle.", stage="app_id"
        )
    return match.group("app_id")


def _decode_secret(seed: str, info: str, extras: str) -> Optional[str]:
    combined = seed + info + extras
    if len(combined) <= _SECRET_SUFFIX_LENGTH:
        return None
    trimmed = combined[:-_SECRET_SUFFIX_LENGTH]
    try:
        return base64.b64decode(trimmed, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def _secrets_from_seed_fragments(bundle_text: str) -> list[str]:
    """
    Rebuilds secrets from per-timezone seed/info/extras fragments. The last seed
    seen for a timezone wins.
    """
    seeds_by_timezone: dict[str, str] = {}
    for match in _SEED_TIMEZONE_REGEX.finditer(bundle_text):
        seed, timezone = match.group("seed", "timezone")
        seeds_by_timezone[timezone] = seed

    if not seeds_by_timezone:
        log.debug("No initial seeds found in bundle.")
        return []

    secrets: list[str] = []
    for regex in _INFO_EXTRAS_REGEXES:
        for match in regex.finditer(bundle_text):
            timezone, info, extras = match.group("timezone", "info", "extras")
            seed = seeds_by_timezone.get(timezone.lower())
            if seed is None:
                continue

            secret = _decode_secret(seed, info, extras)
            if secret is None:
                log.debug(f"Could not decode secret for timezone '{timezone}', skipping.")
                continue
            if secret not in secrets:
                secrets.append(secret)
                log.debug(f"Decoded secret for '{timezone}': {secret[:8]}...")
    return secrets


def _secrets_from_literal(bundle_text: str) -> list[str]:
    """Older bundles embed the secret directly as a 32-hex-digit literal."""
    secrets: list[str] = []
    for match in _SIMPLE_SECRET_REGEX.finditer(bundle_text):
        if match.group(1) not in secrets:
            secrets.append(match.group(1))
    return secrets


# Tried in order; the first strategy returning anything wins
SECRET_STRATEGIES: tuple[Callable[[str], list[str]], ...] = (
    _secrets_from_seed_fragments,
    _secrets_from_literal,
)


def extract_secrets(bundle_text: str) -> list[str]:
    """
    Extracts candidate app secrets from the bundle, in discovery order.

    The list is deduplicated: a secret found more than once (for example by
    several timezones) appears only at its first position, so the validator
    never probes the same candidate twice. Returns an empty list if no
    strategy finds anything.
    """
    for strategy in SECRET_STRATEGIES:
        secrets = strategy(bundle_text)
        if secrets:
            log.debug(f"{strategy.__name__} found {len(secrets)} secret(s).")
            return secrets
    return []


class BundleFetcher:
    """
    Fetches the main JavaScript bundle from the Qobuz web player and
    parses it to extract critical authentication parameters.
    """

    def __init__(self, bundle_content: str):
        self._bundle_content = bundle_content

    @classmethod
    async def fetch(
        cls,
        session: aiohttp.ClientSession,
        base_url: str = _BASE_URL,
        max_retries: int = 3,
    ) -> "BundleFetcher":
        """
        Fetches the bundle from the Qobuz website with retry logic.

        Args:
            session: The HTTP session to use, so cookies set by the login page
                are sent along with the bundle request.
            base_url: Origin of the web player.
            max_retries: Number of attempts before giving up.
        """
        for attempt in range(1, max_retries + 1):
            try:
                log.debug(f"Attempt {attempt}/{max_retries} to fetch Qobuz bundle...")

                async with session.get(f"{base_url}/login") as response:
                    response.raise_for_status()
                    page_html = await response.text()

                bundle_url = base_url + extract_bundle_url(page_html)
                log.debug(f"Found bundle URL: {bundle_url}")

                async with session.get(bundle_url) as response:
                    response.raise_for_status()
                    bundle_text = await response.text()

                log.debug(f"Successfully fetched bundle ({len(bundle_text)} bytes).")
                return cls(bundle_text)

            except (aiohttp.ClientError, asyncio.TimeoutError, BundleExtractionError) as e:
                log.warning(f"Bundle fetch attempt {attempt} failed: {e}")
                if attempt == max_retries:
                    raise BundleExtractionError(
                        f"Failed to fetch bundle after {max_retries} attempts: {e}",
                        stage="fetch",
                    ) from e
                await asyncio.sleep(2**attempt)

        raise BundleExtractionError("Bundle fetching failed unexpectedly.", stage="fetch")

    def extract_app_id(self) -> str:
        app_id = extract_app_id(self._bundle_content)
        log.debug(f"Extracted App ID: {app_id}")
        return app_id

    def extract_secrets(self) -> list[str]:
        log.debug("Extracting secrets from bundle...")
        secrets = extract_secrets(self._bundle_content)
        if not secrets:
            raise BundleExtractionError(
                "No secrets could be extracted from the bundle.", stage="secrets"
            )
        return secrets

    def extract(self) -> BundleTokens:
        """Extracts the app id and every candidate secret."""
        return BundleTokens(app_id=self.extract_app_id(), secrets=self.extract_secrets())
