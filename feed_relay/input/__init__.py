"""
Input parsing utilities.

This package turns raw feed documents into token events.
"""

from .tokenizer import Characters, EndElement, StartElement, iter_events

__all__ = ["Characters", "EndElement", "StartElement", "iter_events"]
