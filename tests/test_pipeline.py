"""Tests for the extraction pipeline: parse, then filter."""

from datetime import datetime, timezone

from conftest import make_entry, make_feed
from feed_relay.core.ledger import LedgerPolicy
from feed_relay.pipeline import extract_new_entries
from feed_relay.store import Database, SeenStore


NOW = datetime(2020, 1, 3, tzinfo=timezone.utc)


def _ledger(tmp_path):
    db = Database(tmp_path / "cache.db")
    db.initialize()
    store = SeenStore(db)
    return LedgerPolicy(store), store


def test_new_entries_are_returned_once_in_document_order(tmp_path, canvas_feed):
    policy, _ = _ledger(tmp_path)

    first = extract_new_entries(canvas_feed, policy, None, NOW)
    second = extract_new_entries(canvas_feed, policy, None, NOW)

    assert [e.title.strip() for e in first] == ["Exam moved", "Welcome"]
    assert second == []


def test_absent_document_yields_nothing(tmp_path):
    policy, store = _ledger(tmp_path)
    assert extract_new_entries(None, policy, None, NOW) == []
    assert extract_new_entries("", policy, None, NOW) == []
    assert store.count() == 0


def test_malformed_document_aborts_cycle_without_touching_ledger(tmp_path, canvas_feed):
    policy, store = _ledger(tmp_path)
    truncated = canvas_feed[: canvas_feed.index("Welcome")]

    assert extract_new_entries(truncated, policy, None, NOW) == []
    assert store.count() == 0


def test_bad_timestamp_skips_cycle_and_next_cycle_recovers(tmp_path):
    policy, store = _ledger(tmp_path)
    bad = make_feed(make_entry("good", "Good"), make_entry("bad", "Bad", published="soon"))
    good = make_feed(make_entry("good", "Good"))

    assert extract_new_entries(bad, policy, None, NOW) == []
    assert store.count() == 0
    assert [e.id for e in extract_new_entries(good, policy, None, NOW)] == ["good"]


def test_timestamp_overflowing_utc_skips_cycle_only(tmp_path):
    policy, store = _ledger(tmp_path)
    edge = make_feed(
        make_entry("good", "Good"),
        make_entry("edge", "Edge", published="0001-01-01T00:00:00+01:00"),
    )

    assert extract_new_entries(edge, policy, None, NOW) == []
    assert store.count() == 0
    assert [e.id for e in extract_new_entries(make_feed(make_entry("good", "Good")), policy, None, NOW)] == ["good"]
