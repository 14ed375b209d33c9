"""
Deduplication policies deciding which parsed entries are new.

Two policies share one interface:
1. LedgerPolicy: remembers every delivered entry key (primary)
2. CursorPolicy: remembers when the previous poll cycle began and forwards
   entries published after it

They are not behaviorally equivalent, so the choice is explicit
configuration (dedup.policy) rather than an implementation detail.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
import logging

from ..errors import ConfigError, LedgerError
from ..logging_utils import log_event
from ..store import CursorStore, Database, SeenStore
from .types import Entry


POLICY_LEDGER = "ledger"
POLICY_CURSOR = "cursor"


class DedupPolicy(ABC):
    """Decides whether entries have already been delivered."""

    name: str = ""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("feed_relay")

    @abstractmethod
    def select_new(self, entries: list[Entry], cycle_started: datetime) -> list[Entry]:
        """Return the new entries, in the order given, and record them.

        Args:
            entries: Parsed entries in document order
            cycle_started: When the current poll cycle began

        Returns:
            The subset of entries that should be delivered
        """
        raise NotImplementedError

    @abstractmethod
    def prime(self, entries: list[Entry], cycle_started: datetime) -> None:
        """Record entries as delivered without selecting them."""
        raise NotImplementedError


class LedgerPolicy(DedupPolicy):
    """Key-based dedup backed by a durable set of seen entry keys.

    An entry is marked seen right after it is judged new and before it is
    delivered, so a crash between the two loses the message instead of
    posting it twice.
    """

    name = POLICY_LEDGER

    def __init__(self, store: SeenStore, logger: logging.Logger | None = None) -> None:
        super().__init__(logger)
        self.store = store

    def select_new(self, entries: list[Entry], cycle_started: datetime) -> list[Entry]:
        selected: list[Entry] = []
        for entry in entries:
            key = entry.dedup_key
            if key is None:
                log_event(
                    self.logger,
                    "Entry has neither id nor link; skipping",
                    event="entry_skipped",
                    title=entry.title.strip(),
                )
                continue
            if self._seen(key):
                continue
            self._mark_seen(key)
            selected.append(entry)
        return selected

    def prime(self, entries: list[Entry], cycle_started: datetime) -> None:
        for entry in entries:
            key = entry.dedup_key
            if key is not None:
                self._mark_seen(key)

    def _seen(self, key: str) -> bool:
        try:
            return self.store.seen(key)
        except LedgerError as exc:
            # Degrade to "new": a duplicate post beats a crashed forwarder.
            log_event(
                self.logger,
                "Ledger read failed; treating entry as new",
                level=logging.WARNING,
                event="ledger_read_failed",
                entry_key=key,
                error=str(exc),
            )
            return False

    def _mark_seen(self, key: str) -> None:
        try:
            self.store.mark_seen(key)
        except LedgerError as exc:
            log_event(
                self.logger,
                "Ledger write failed",
                level=logging.ERROR,
                event="ledger_write_failed",
                entry_key=key,
                error=str(exc),
            )


class CursorPolicy(DedupPolicy):
    """Timestamp-based dedup against the start of the previous cycle.

    The cursor is read once per cycle and then advanced to the current
    cycle's start, after filtering and before delivery. Entries published
    while the previous batch was being delivered, with a publish time
    earlier than the new cursor, are never selected.
    Entries without a publish time in the feed are never selected.
    """

    name = POLICY_CURSOR

    def __init__(self, store: CursorStore, logger: logging.Logger | None = None) -> None:
        super().__init__(logger)
        self.store = store

    def select_new(self, entries: list[Entry], cycle_started: datetime) -> list[Entry]:
        try:
            cursor = self.store.get()
        except LedgerError as exc:
            log_event(
                self.logger,
                "Cursor read failed; skipping dedup filtering this cycle",
                level=logging.WARNING,
                event="ledger_read_failed",
                error=str(exc),
            )
            selected = list(entries)
        else:
            if cursor is None:
                # First run: only entries published from now on are forwarded.
                cursor = cycle_started
            selected = []
            for entry in entries:
                if not entry.dated:
                    # published is the parse time here, always past the cursor.
                    log_event(
                        self.logger,
                        "Entry has no publish time; skipping",
                        event="entry_skipped",
                        entry_id=entry.id,
                        title=entry.title.strip(),
                    )
                elif entry.published > cursor:
                    selected.append(entry)
        self._advance(cycle_started)
        return selected

    def prime(self, entries: list[Entry], cycle_started: datetime) -> None:
        self._advance(cycle_started)

    def _advance(self, cycle_started: datetime) -> None:
        try:
            self.store.set(cycle_started)
        except LedgerError as exc:
            log_event(
                self.logger,
                "Cursor write failed",
                level=logging.ERROR,
                event="ledger_write_failed",
                error=str(exc),
            )


def create_policy(name: str, db: Database, logger: logging.Logger | None = None) -> DedupPolicy:
    """Build a dedup policy by name over an initialized state database."""
    key = name.lower().strip()
    if key == POLICY_LEDGER:
        return LedgerPolicy(SeenStore(db), logger)
    if key == POLICY_CURSOR:
        return CursorPolicy(CursorStore(db), logger)
    raise ConfigError(f"Unsupported dedup policy: {name}. Supported: {POLICY_CURSOR}, {POLICY_LEDGER}")
