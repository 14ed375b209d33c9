"""Tests for feed fetching failure mapping."""

import httpx

from feed_relay.fetch import fetcher
from feed_relay.fetch.fetcher import fetch_feed


URL = "https://gatech.instructure.com/feeds/announcements/course_1.atom"


def _fetch(handler, retries=0):
    return fetch_feed(
        URL,
        timeout=5,
        retries=retries,
        user_agent="test-agent",
        trust_env=False,
        transport=httpx.MockTransport(handler),
    )


def test_fetch_returns_text_on_success():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["User-Agent"] == "test-agent"
        return httpx.Response(200, text="<feed/>")

    result = _fetch(handler)
    assert result.ok
    assert result.text == "<feed/>"
    assert result.error is None


def test_fetch_maps_server_error_to_absent_content():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    result = _fetch(handler)
    assert not result.ok
    assert result.status_code == 503
    assert result.error.startswith("HTTPStatusError")


def test_fetch_retries_transport_errors(monkeypatch):
    calls = 0
    sleeps = []
    monkeypatch.setattr(fetcher.time, "sleep", sleeps.append)

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text="<feed/>")

    result = _fetch(handler, retries=2)
    assert result.text == "<feed/>"
    assert calls == 3
    assert sleeps == [0.5, 1.0]


def test_fetch_gives_up_after_retries(monkeypatch):
    monkeypatch.setattr(fetcher.time, "sleep", lambda seconds: None)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _fetch(handler, retries=1)
    assert result.text is None
    assert result.status_code is None
    assert result.error.startswith("ConnectError")
