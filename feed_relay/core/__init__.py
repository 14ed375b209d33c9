"""
Core domain models and parsing logic.

This package contains the entry data types, the parsing state machine,
the markup renderer and the dedup policies. None of it performs network
I/O.
"""

from .types import Entry, ParsedFeed, Region
from .context import ContextStack, ContextStackError
from .builder import BuildOptions, EntryBuilder, normalize_author, parse_rfc3339
from .markup import render_markup
from .ledger import CursorPolicy, DedupPolicy, LedgerPolicy, create_policy

__all__ = [
    "Entry",
    "ParsedFeed",
    "Region",
    "ContextStack",
    "ContextStackError",
    "BuildOptions",
    "EntryBuilder",
    "normalize_author",
    "parse_rfc3339",
    "render_markup",
    "DedupPolicy",
    "LedgerPolicy",
    "CursorPolicy",
    "create_policy",
]
