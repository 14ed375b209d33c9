"""Feed fetching over HTTP."""

from .fetcher import FetchResult, fetch_feed

__all__ = ["FetchResult", "fetch_feed"]
