"""Remote content access."""

from .fetcher import ContentFetcher, HttpContentFetcher

__all__ = ["ContentFetcher", "HttpContentFetcher"]
