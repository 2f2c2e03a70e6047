"""
Web Scraping Layer.

This package contains modules for fetching and parsing data from the
Qobuz web player, primarily to extract the app id and API secrets.
"""

from .bundle_fetcher import BundleFetcher, extract_app_id, extract_bundle_url, extract_secrets

__all__ = ["BundleFetcher", "extract_app_id", "extract_bundle_url", "extract_secrets"]
