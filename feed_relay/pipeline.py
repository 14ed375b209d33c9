"""
Feed extraction pipeline.

Parsing is kept separate from dedup filtering: a document is parsed to
completion first, and only a fully parsed document reaches the dedup
policy. A malformed document therefore aborts the cycle without touching
the durable dedup state.
"""

from __future__ import annotations

from datetime import datetime
import logging

from .core.builder import BuildOptions, EntryBuilder
from .core.ledger import DedupPolicy
from .core.types import Entry, ParsedFeed
from .errors import FeedParseError
from .input.tokenizer import iter_events
from .logging_utils import log_event


def parse_feed(document: str, options: BuildOptions | None = None) -> ParsedFeed:
    """Parse an Atom document into its main link and entries.

    Parsing is deterministic: the same document always yields the same
    entries in the same (document) order.

    Raises:
        FeedParseError: If the document is malformed or an entry carries a
            malformed published timestamp
    """
    builder = EntryBuilder(options)
    for event in iter_events(document):
        builder.feed(event)
    return builder.result()


def extract_new_entries(
    document: str | None,
    policy: DedupPolicy,
    options: BuildOptions | None,
    cycle_started: datetime,
    logger: logging.Logger | None = None,
) -> list[Entry]:
    """Parse a document and return the entries the policy has not seen.

    Args:
        document: Raw feed text, or None when nothing was fetched this cycle
        policy: Dedup policy; records the returned entries as delivered
        options: Entry build options
        cycle_started: When the current poll cycle began
        logger: Logger for structured events

    Returns:
        New entries in document order. Empty when the document is absent or
        could not be parsed.
    """
    if not document:
        return []

    try:
        parsed = parse_feed(document, options)
    except FeedParseError as exc:
        log_event(
            logger,
            "Feed parse failed; skipping this cycle",
            level=logging.WARNING,
            event="feed_parse_failed",
            error=str(exc),
        )
        return []

    new_entries = policy.select_new(parsed.entries, cycle_started)
    for entry in new_entries:
        log_event(
            logger,
            f"New entry: {entry.title.strip()}",
            event="entry_new",
            entry_id=entry.id,
            url=entry.link,
        )
    return new_entries
