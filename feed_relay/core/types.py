"""
Core data types for feed-relay.

This module defines the records that flow through the pipeline:
- Region: semantic regions of an Atom document tracked while parsing
- Entry: one finalized feed entry, ready for delivery
- ParsedFeed: the result of parsing a whole feed document
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Region(Enum):
    """Region markers pushed onto the context stack while parsing."""

    METADATA = "metadata"
    ENTRY = "entry"
    TITLE = "title"
    PUBLISHED = "published"
    AUTHOR = "author"
    CONTENT = "content"
    ID = "id"


@dataclass(frozen=True)
class Entry:
    """One syndication entry after its enclosing element has closed.

    Attributes:
        id: Stable identifier assigned by the feed, if present
        title: Entry title as it appeared in the feed (trimmed at delivery)
        author: Display name after author normalization
        content: Entry body rendered to Slack markup
        link: URL of the entry's canonical page
        published: Timezone-aware publish time
        dated: False when the feed gave no publish time and published
            holds the time the entry was parsed
    """

    id: str | None
    title: str
    author: str
    content: str
    link: str
    published: datetime
    dated: bool = True

    @property
    def dedup_key(self) -> str | None:
        """Key used by the seen-entry ledger; falls back to the link."""
        return self.id or self.link or None


@dataclass
class ParsedFeed:
    """A parsed feed document.

    Attributes:
        main_link: The feed's own page, from a document-level link element
        entries: Entries in document order (newest first by convention)
    """

    main_link: str | None = None
    entries: list[Entry] = field(default_factory=list)
