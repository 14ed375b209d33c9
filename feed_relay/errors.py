"""Exceptions shared across pipeline stages."""

from __future__ import annotations


class FeedRelayError(Exception):
    """Base class for recoverable feed-relay errors."""


class FeedParseError(FeedRelayError):
    """The feed document or one of its values violates the feed format.

    Aborts extraction for the current poll cycle only.
    """


class LedgerError(FeedRelayError):
    """The durable dedup state could not be read or written."""


class DeliveryError(FeedRelayError):
    """A message could not be posted to the chat platform."""


class ConfigError(FeedRelayError):
    """The configuration is incomplete or contains an unsupported value."""
