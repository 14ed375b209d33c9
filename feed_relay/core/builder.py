"""
Entry builder: the state machine that turns feed tokens into entries.

The builder consumes one token event at a time and keeps three pieces of
state: the region stack, the draft of the entry currently being read, and
the most recent run of character data. Scalar fields are assigned when the
element that scoped them closes; the embedded content HTML is handed whole
to the markup renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import re
from typing import Callable

from ..errors import FeedParseError
from ..input.tokenizer import Characters, EndElement, Event, StartElement
from .context import ContextStack
from .markup import DEFAULT_BASE_URL, DEFAULT_TABLE_PLACEHOLDER, render_markup
from .types import Entry, ParsedFeed, Region


AUTHOR_FIRST_LAST = "first_last"
AUTHOR_FULL = "full"

# Elements that scope character data, keyed by local name.
_SCALAR_REGIONS = {
    "published": Region.PUBLISHED,
    "author": Region.AUTHOR,
    "content": Region.CONTENT,
    "id": Region.ID,
}
_CLOSING_REGIONS = {
    "entry": Region.ENTRY,
    "title": Region.TITLE,
    **_SCALAR_REGIONS,
}

_RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ]"
    r"(?P<time>\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$",
    re.ASCII,
)


@dataclass(frozen=True)
class BuildOptions:
    """Per-feed options for building entries.

    Attributes:
        author_format: "first_last" or "full"
        base_url: Origin used to resolve root-relative links in content
        table_placeholder: Replacement text for tables in content
    """

    author_format: str = AUTHOR_FIRST_LAST
    base_url: str = DEFAULT_BASE_URL
    table_placeholder: str = DEFAULT_TABLE_PLACEHOLDER


@dataclass
class EntryDraft:
    """Mutable accumulator for the entry currently being parsed."""

    opened_at: datetime
    id: str | None = None
    title: str = ""
    author: str = ""
    content: str = ""
    link: str = ""
    published: datetime | None = None

    def finalize(self) -> Entry:
        return Entry(
            id=self.id,
            title=self.title,
            author=self.author,
            content=self.content,
            link=self.link,
            published=self.published or self.opened_at,
            dated=self.published is not None,
        )


class EntryBuilder:
    """Builds a ParsedFeed from a forward-only stream of token events."""

    def __init__(
        self,
        options: BuildOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.options = options or BuildOptions()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stack = ContextStack()
        self._draft = EntryDraft(opened_at=self._clock())
        self._text = ""
        self._feed = ParsedFeed()

    def feed(self, event: Event) -> None:
        """Consume one token event."""
        if isinstance(event, StartElement):
            self._start(event)
        elif isinstance(event, Characters):
            # Whitespace-only runs are indentation between elements.
            if event.text.strip():
                self._text = event.text
        elif isinstance(event, EndElement):
            self._end(event.name)

    def result(self) -> ParsedFeed:
        """Return everything built so far. Only closed entries are included."""
        return ParsedFeed(main_link=self._feed.main_link, entries=list(self._feed.entries))

    def _start(self, event: StartElement) -> None:
        self._text = ""
        name = event.name
        if name == "entry":
            self._stack.push(Region.ENTRY)
            self._draft = EntryDraft(opened_at=self._clock())
        elif name == "link":
            href = event.attr("href")
            if href is None:
                return
            if self._stack.current_is(Region.METADATA):
                self._feed.main_link = href
            else:
                self._draft.link = href
        elif name == "title":
            if self._stack.current_is(Region.ENTRY):
                self._stack.push(Region.TITLE)
        elif name in _SCALAR_REGIONS:
            self._stack.push(_SCALAR_REGIONS[name])

    def _end(self, name: str) -> None:
        region = _CLOSING_REGIONS.get(name)
        if region is None or not self._stack.current_is(region):
            return
        self._stack.pop()

        text = self._text
        draft = self._draft
        if region is Region.ENTRY:
            self._feed.entries.append(draft.finalize())
            self._draft = EntryDraft(opened_at=self._clock())
        elif region is Region.TITLE:
            draft.title = text
        elif region is Region.PUBLISHED:
            draft.published = parse_rfc3339(text)
        elif region is Region.AUTHOR:
            draft.author = normalize_author(text, self.options.author_format)
        elif region is Region.CONTENT:
            draft.content = render_markup(
                text,
                base_url=self.options.base_url,
                table_placeholder=self.options.table_placeholder,
            )
        elif region is Region.ID:
            draft.id = text


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Only the RFC 3339 ``date-time`` shape is accepted; other ISO 8601 forms
    (basic format, week dates, missing offset) are rejected.

    Raises:
        FeedParseError: If the value is malformed, carries no UTC offset or
            falls outside the representable range once converted to UTC
    """
    raw = value.strip()
    match = _RFC3339_RE.match(raw)
    if match is None:
        raise FeedParseError(f"Malformed published timestamp: {raw!r}")
    date, time, fraction, offset = match.group("date", "time", "fraction", "offset")
    # fromisoformat takes at most microsecond precision.
    fraction = f".{fraction[:6].ljust(6, '0')}" if fraction else ""
    offset = "+00:00" if offset in ("Z", "z") else offset
    try:
        parsed = datetime.fromisoformat(f"{date}T{time}{fraction}{offset}")
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise FeedParseError(f"Invalid published timestamp: {raw!r}") from exc


def normalize_author(raw: str, author_format: str) -> str:
    """Apply the configured author display policy.

    "first_last" keeps only the first and last whitespace-separated tokens,
    dropping middle names and initials; "full" passes the text through.

    Examples:
        >>> normalize_author("Jane Q. Public", "first_last")
        'Jane Public'
    """
    if author_format != AUTHOR_FIRST_LAST:
        return raw
    names = raw.split()
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{names[0]} {names[-1]}"
