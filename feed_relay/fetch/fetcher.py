"""
HTTP fetching of the feed document.

Transport failures never propagate: they come back as a FetchResult with
an error and no text, which the poll loop treats as "no content this
cycle".
"""

from __future__ import annotations

from dataclasses import dataclass
import time

import httpx


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.text is not None


def fetch_feed(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool,
    transport: httpx.BaseTransport | None = None,
) -> FetchResult:
    """Fetch the feed document using httpx with retry logic.

    Follows redirects and respects system proxy settings when trust_env is
    enabled. Non-2xx responses count as failures and are retried.

    Args:
        url: The feed URL
        timeout: Request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment
        transport: Optional httpx transport (used by tests)

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = {"User-Agent": user_agent, "Accept": "application/atom+xml, application/xml;q=0.9, */*;q=0.8"}
    last_error: str | None = None
    last_status: int | None = None

    for attempt in range(retries + 1):
        try:
            with httpx.Client(
                timeout=timeout,
                headers=headers,
                follow_redirects=True,
                trust_env=trust_env,
                transport=transport,
            ) as client:
                resp = client.get(url)
                last_status = resp.status_code
                resp.raise_for_status()
                return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
        except httpx.HTTPError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            if attempt < retries:
                # Linear backoff: 0.5s, 1.0s, 1.5s...
                time.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=last_status, text=None, error=last_error)
