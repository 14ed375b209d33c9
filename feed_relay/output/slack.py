"""
Delivery of entries to a Slack channel through the Slack Web API.

Each entry becomes one chat.postMessage call carrying a single legacy
attachment (title, author, link, rendered body, footer, timestamp).
Slack reports most failures as HTTP 200 with ``{"ok": false}``, so both
transport errors and API errors surface as DeliveryError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
from typing import Any

import httpx

from ..config import SlackConfig
from ..core.types import Entry
from ..errors import DeliveryError


class Deliverer(ABC):
    """Destination for new entries, called once per entry in order."""

    @abstractmethod
    def deliver(self, entry: Entry) -> None:
        """Post one entry.

        Raises:
            DeliveryError: If the entry could not be delivered
        """
        raise NotImplementedError


def build_attachment(entry: Entry, cfg: SlackConfig) -> dict[str, Any]:
    """Build the Slack attachment for an entry."""
    title = entry.title.strip()
    return {
        "fallback": title,
        "color": cfg.color,
        "author_name": entry.author.strip(),
        "title": title,
        "title_link": entry.link,
        "text": entry.content.strip(),
        "footer": cfg.footer,
        "ts": int(entry.published.timestamp()),
    }


class SlackClient:
    """Minimal Slack Web API client authenticated with a bot token."""

    def __init__(
        self,
        token: str,
        cfg: SlackConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self._client = httpx.Client(
            base_url=cfg.api_base_url.rstrip("/") + "/",
            timeout=cfg.timeout_seconds,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SlackClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def resolve_channel(self, name: str) -> str:
        """Find a channel id by name, following pagination.

        Raises:
            DeliveryError: If the API call fails or no channel has that name
        """
        wanted = name.lstrip("#")
        cursor: str | None = None
        while True:
            params = {"types": "public_channel,private_channel", "exclude_archived": "true", "limit": "200"}
            if cursor:
                params["cursor"] = cursor
            data = self._call("GET", "conversations.list", params=params)
            for channel in data.get("channels") or []:
                if channel.get("name") == wanted:
                    return str(channel["id"])
            cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break
        raise DeliveryError(f"Workspace does not contain channel '{wanted}'")

    def post_entry(self, channel_id: str, entry: Entry) -> dict[str, Any]:
        payload = {
            "channel": channel_id,
            "text": self.cfg.mention,
            "attachments": json.dumps([build_attachment(entry, self.cfg)]),
        }
        return self._call("POST", "chat.postMessage", json_body=payload)

    def _call(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            resp = self._client.request(method, endpoint, params=params, json=json_body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Slack {endpoint} failed: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise DeliveryError(f"Slack {endpoint} returned invalid JSON") from exc
        if not data.get("ok"):
            raise DeliveryError(f"Slack {endpoint} error: {data.get('error', 'unknown_error')}")
        return data


class SlackDeliverer(Deliverer):
    """Posts entries to one resolved channel."""

    def __init__(self, client: SlackClient, channel_id: str) -> None:
        self.client = client
        self.channel_id = channel_id

    def deliver(self, entry: Entry) -> None:
        self.client.post_entry(self.channel_id, entry)
