"""Tests for web player bundle parsing and fetching."""

import base64

import pytest

from qbz.exceptions import BundleExtractionError
from qbz.web.bundle_fetcher import (
    BundleFetcher,
    extract_app_id,
    extract_bundle_url,
    extract_secrets,
)

from .conftest import FakeResponse, FakeSession

SECRET = "abcdef" * 5 + "ab"
OTHER_SECRET = "0123456789" * 3 + "ab"
SALT = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGH"  # 44 chars


def _fragments(secret: str) -> tuple[str, str, str]:
    """Splits an encoded secret into seed, info and extras the way bundles do."""
    encoded = base64.b64encode(secret.encode()).decode()
    assert "+" not in encoded and "/" not in encoded
    return encoded[:16], encoded[16:] + SALT[:10], SALT[10:]


def _seed_call(seed: str, timezone: str) -> str:
    return f'b.initialSeed("{seed}",window.utimezone.{timezone})'


def _quoted_block(timezone: str, info: str, extras: str) -> str:
    return f'"{timezone}":{{info:"{info}",extras:"{extras}"}}'


def _named_block(region: str, timezone: str, info: str, extras: str) -> str:
    return f'name:"{region}/{timezone}",info:"{info}",extras:"{extras}"'


class TestBundleUrl:
    def test_finds_versioned_bundle(self):
        html = '<script src="/resources/7.0.1-b001/bundle.js"></script>'
        assert extract_bundle_url(html) == "/resources/7.0.1-b001/bundle.js"

    def test_ignores_other_scripts(self):
        html = (
            '<script src="/js/vendor.js"></script>'
            '<script src="/resources/8.12.0-a123/bundle.js"></script>'
        )
        assert extract_bundle_url(html) == "/resources/8.12.0-a123/bundle.js"

    def test_missing_bundle_raises(self):
        with pytest.raises(BundleExtractionError) as exc_info:
            extract_bundle_url("<html></html>")
        assert exc_info.value.stage == "bundle_url"


class TestAppId:
    def test_extracts_nine_digits(self):
        bundle = 'production:{api:{appId:"123456789",appSecret:"abc"}'
        assert extract_app_id(bundle) == "123456789"

    def test_rejects_short_id(self):
        with pytest.raises(BundleExtractionError) as exc_info:
            extract_app_id('production:{api:{appId:"12345"')
        assert exc_info.value.stage == "app_id"


class TestSecrets:
    def test_decodes_quoted_timezone_blocks(self):
        seed, info, extras = _fragments(SECRET)
        bundle = _seed_call(seed, "berlin") + ";" + _quoted_block("berlin", info, extras)
        assert extract_secrets(bundle) == [SECRET]

    def test_decodes_named_timezone_blocks(self):
        seed, info, extras = _fragments(SECRET)
        bundle = _seed_call(seed, "berlin") + _named_block("Europe", "Berlin", info, extras)
        assert extract_secrets(bundle) == [SECRET]

    def test_preserves_discovery_order(self):
        seed_a, info_a, extras_a = _fragments(OTHER_SECRET)
        seed_b, info_b, extras_b = _fragments(SECRET)
        bundle = (
            _seed_call(seed_b, "london")
            + _seed_call(seed_a, "berlin")
            + _quoted_block("berlin", info_a, extras_a)
            + _quoted_block("london", info_b, extras_b)
        )
        assert extract_secrets(bundle) == [OTHER_SECRET, SECRET]

    def test_last_seed_per_timezone_wins(self):
        seed, info, extras = _fragments(SECRET)
        bundle = (
            _seed_call("AAAAAAAAAAAAAAAA", "berlin")
            + _seed_call(seed, "berlin")
            + _quoted_block("berlin", info, extras)
        )
        assert extract_secrets(bundle) == [SECRET]

    def test_timezone_without_seed_is_ignored(self):
        seed, info, extras = _fragments(SECRET)
        bundle = _seed_call(seed, "berlin") + _quoted_block("paris", info, extras)
        assert extract_secrets(bundle) == []

    def test_undecodable_fragment_is_skipped(self):
        seed, info, extras = _fragments(SECRET)
        bundle = (
            _seed_call("abc", "paris")
            + _quoted_block("paris", "de", SALT)
            + _seed_call(seed, "berlin")
            + _quoted_block("berlin", info, extras)
        )
        assert extract_secrets(bundle) == [SECRET]

    def test_short_fragment_is_skipped(self):
        bundle = _seed_call("abc", "paris") + _quoted_block("paris", "de", "fg")
        assert extract_secrets(bundle) == []

    def test_falls_back_to_literal_secret(self):
        bundle = 'production:{api:{appId:"123456789",appSecret:"0123456789abcdef0123456789abcdef"}'
        assert extract_secrets(bundle) == ["0123456789abcdef0123456789abcdef"]

    def test_literal_ignored_when_fragments_decode(self):
        seed, info, extras = _fragments(SECRET)
        bundle = (
            'appSecret:"0123456789abcdef0123456789abcdef"'
            + _seed_call(seed, "berlin")
            + _quoted_block("berlin", info, extras)
        )
        assert extract_secrets(bundle) == [SECRET]

    def test_nothing_found_is_empty(self):
        assert extract_secrets('production:{api:{appId:"123456789",appSecret:"abc"}') == []


class TestBundleFetcher:
    def test_extract_returns_tokens(self):
        bundle = 'production:{api:{appId:"987654321",appSecret:"0123456789abcdef0123456789abcdef"}'
        tokens = BundleFetcher(bundle).extract()
        assert tokens.app_id == "987654321"
        assert tokens.secrets == ("0123456789abcdef0123456789abcdef",)

    def test_extract_without_secrets_fails(self):
        with pytest.raises(BundleExtractionError) as exc_info:
            BundleFetcher('production:{api:{appId:"987654321"').extract()
        assert exc_info.value.stage == "secrets"

    @pytest.mark.anyio
    async def test_fetch_follows_login_page_to_bundle(self):
        session = FakeSession(
            {
                "/login": FakeResponse(
                    text='<script src="/resources/7.0.1-b001/bundle.js"></script>'
                ),
                "/resources/7.0.1-b001/bundle.js": FakeResponse(
                    text='production:{api:{appId:"123456789"'
                ),
            }
        )
        fetcher = await BundleFetcher.fetch(session, base_url="https://player.test")
        assert fetcher.extract_app_id() == "123456789"
        assert [call[1] for call in session.calls] == [
            "https://player.test/login",
            "https://player.test/resources/7.0.1-b001/bundle.js",
        ]

    @pytest.mark.anyio
    async def test_fetch_gives_up_after_retries(self):
        session = FakeSession({"/login": FakeResponse(text="<html></html>")})
        with pytest.raises(BundleExtractionError) as exc_info:
            await BundleFetcher.fetch(session, max_retries=1)
        assert exc_info.value.stage == "fetch"

    @pytest.mark.anyio
    async def test_fetch_wraps_http_errors(self):
        session = FakeSession({"/login": FakeResponse(status=503)})
        with pytest.raises(BundleExtractionError):
            await BundleFetcher.fetch(session, max_retries=1)


def test_secret_shared_by_timezones_is_listed_once():
    seed, info, extras = _fragments(SECRET)
    bundle = (
        _seed_call(seed, "berlin")
        + _seed_call(seed, "london")
        + _quoted_block("berlin", info, extras)
        + _quoted_block("london", info, extras)
    )
    assert extract_secrets(bundle) == [SECRET]
