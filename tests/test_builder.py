"""Tests for the region stack and the entry builder state machine."""

from datetime import datetime, timezone

import pytest

from conftest import make_entry, make_feed
from feed_relay.core.builder import (
    BuildOptions,
    EntryBuilder,
    normalize_author,
    parse_rfc3339,
)
from feed_relay.core.context import ContextStack, ContextStackError
from feed_relay.core.types import Region
from feed_relay.errors import FeedParseError
from feed_relay.input.tokenizer import EndElement, iter_events
from feed_relay.pipeline import parse_feed


def test_context_stack_is_seeded_with_metadata():
    stack = ContextStack()
    assert stack.current_is(Region.METADATA)
    stack.push(Region.ENTRY)
    stack.push(Region.TITLE)
    assert stack.top is Region.TITLE
    assert stack.pop() is Region.TITLE
    assert stack.current_is(Region.ENTRY)


def test_context_stack_refuses_to_pop_seed():
    stack = ContextStack()
    with pytest.raises(ContextStackError):
        stack.pop()
    assert len(stack) == 1


def test_parse_feed_extracts_entries_in_document_order(canvas_feed):
    parsed = parse_feed(canvas_feed)

    assert parsed.main_link == "https://gatech.instructure.com/courses/1"
    assert [e.id for e in parsed.entries] == [
        "tag:canvas,2020:announcement_2",
        "tag:canvas,2020:announcement_1",
    ]
    newest = parsed.entries[0]
    assert newest.title == "  Exam moved  "
    assert newest.author == "Jane Public"
    assert newest.link == "https://gatech.instructure.com/courses/1/discussion_topics/2"
    assert newest.published == datetime(2020, 1, 2, 15, 0, tzinfo=timezone.utc)
    assert newest.content == (
        "*Exam Friday*\nSee <https://gatech.instructure.com/syllabus|here>\n"
    )
    assert parsed.entries[1].content == "Hello _class_\n"


def test_parse_feed_is_deterministic(canvas_feed):
    assert parse_feed(canvas_feed).entries == parse_feed(canvas_feed).entries


def test_feed_level_link_does_not_set_entry_link():
    feed = make_feed(make_entry("a", "No link", link=None))
    parsed = parse_feed(feed)
    assert parsed.main_link == "https://gatech.instructure.com/courses/1"
    assert parsed.entries[0].link == ""


def test_feed_level_fields_do_not_leak_into_entries():
    feed = make_feed(make_entry(None, "Anonymous"))
    entry = parse_feed(feed).entries[0]
    assert entry.id is None
    assert entry.title == "Anonymous"


def test_full_author_format_keeps_middle_names(canvas_feed):
    parsed = parse_feed(canvas_feed, BuildOptions(author_format="full"))
    assert parsed.entries[0].author == "Jane Q. Public"


def test_malformed_published_raises_parse_error():
    feed = make_feed(make_entry("a", "Bad date", published="yesterday"))
    with pytest.raises(FeedParseError):
        parse_feed(feed)


def test_malformed_document_raises_parse_error(canvas_feed):
    with pytest.raises(FeedParseError):
        parse_feed(canvas_feed.replace("</feed>", ""))


def test_missing_published_defaults_to_entry_open_time():
    opened = datetime(2021, 5, 1, 12, 0, tzinfo=timezone.utc)
    builder = EntryBuilder(clock=lambda: opened)
    for event in iter_events(make_feed(make_entry("a", "Undated", published=None))):
        builder.feed(event)
    entry = builder.result().entries[0]
    assert entry.published == opened
    assert not entry.dated


def test_unclosed_entry_is_not_exposed():
    events = list(iter_events(make_feed(make_entry("a", "Done"), make_entry("b", "Open"))))
    last_close = max(
        i for i, event in enumerate(events) if isinstance(event, EndElement) and event.name == "entry"
    )
    builder = EntryBuilder()
    for event in events[:last_close]:
        builder.feed(event)
    assert [e.id for e in builder.result().entries] == ["a"]


def test_parse_rfc3339_accepts_utc_designator_and_fractions():
    assert parse_rfc3339("2020-01-02T10:00:00Z") == datetime(2020, 1, 2, 10, tzinfo=timezone.utc)
    assert parse_rfc3339("2020-01-02t10:00:00.123456z").microsecond == 123456


def test_parse_rfc3339_rejects_naive_and_garbage():
    with pytest.raises(FeedParseError):
        parse_rfc3339("2020-01-02T10:00:00")
    with pytest.raises(FeedParseError):
        parse_rfc3339("not a date")


def test_parse_rfc3339_rejects_edge_values_that_overflow_utc():
    with pytest.raises(FeedParseError):
        parse_rfc3339("0001-01-01T00:00:00+01:00")
    with pytest.raises(FeedParseError):
        parse_rfc3339("9999-12-31T23:59:59-01:00")


@pytest.mark.parametrize(
    "value",
    [
        "20200102T100000+0000",
        "2020-W01-4T10:00:00Z",
        "2020-01-02T10:00Z",
        "2020-01-02T10:00:00+0500",
        "2020-13-02T10:00:00Z",
    ],
)
def test_parse_rfc3339_rejects_other_iso8601_forms(value):
    with pytest.raises(FeedParseError):
        parse_rfc3339(value)


def test_parse_rfc3339_accepts_space_separator_and_long_fractions():
    parsed = parse_rfc3339("2020-01-02 10:00:00.123456789+02:00")
    assert parsed == datetime(2020, 1, 2, 8, 0, 0, 123456, tzinfo=timezone.utc)


def test_normalize_author():
    assert normalize_author("Jane Q. Public", "first_last") == "Jane Public"
    assert normalize_author("Cher", "first_last") == "Cher"
    assert normalize_author("  ", "first_last") == ""
    assert normalize_author("Jane Q. Public", "full") == "Jane Q. Public"
