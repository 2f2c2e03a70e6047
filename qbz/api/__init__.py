"""
Qobuz API Layer.

This package handles all communication with the Qobuz JSON API.
"""

from .auth import SecretValidator, parse_login_response
from .client import QobuzClient
from .signing import Md5RequestSigner, RequestSigner, get_timestamp

__all__ = [
    "Md5RequestSigner",
    "QobuzClient",
    "RequestSigner",
    "SecretValidator",
    "get_timestamp",
    "parse_login_response",
]
