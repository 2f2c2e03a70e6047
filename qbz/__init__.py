"""
qbz: an authenticated client for the Qobuz web player API with an in-memory
audio cache and background prefetcher.
"""

__version__ = "0.1.0"
