"""
feed-relay - forward new Atom feed entries to a Slack channel.

This package polls a syndication feed, converts the HTML embedded in each
new entry into Slack markup, and posts every entry at most once.

Main entry point is the CLI via `feed-relay run` command.

Example:
    $ feed-relay run -c config.yaml
"""

__all__ = ["__version__", "Entry", "parse_feed", "extract_new_entries", "render_markup"]
__version__ = "0.1.0"

from .core.markup import render_markup
from .core.types import Entry
from .pipeline import extract_new_entries, parse_feed
