"""
Conversion of embedded entry HTML into Slack mrkdwn.

Entry content arrives as an HTML fragment. It is parsed with BeautifulSoup
and walked depth-first; every element contributes delimiters when it opens
and when it closes, and text nodes are copied through. Supported mapping:
- b/strong -> *bold*, i/em -> _italic_
- br -> newline on open, p -> newline on close
- a[href] -> <url|label>, with root-relative URLs resolved against a base
- table -> a fixed placeholder; everything inside the table is dropped
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag


DEFAULT_BASE_URL = "https://gatech.instructure.com"
DEFAULT_TABLE_PLACEHOLDER = "*_See table on Canvas_*"

_BOLD_TAGS = {"b", "strong"}
_ITALIC_TAGS = {"i", "em"}
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass
class _RenderState:
    """Accumulator threaded through the traversal.

    Attributes:
        parts: Output fragments in emission order
        pending_url: href of the most recently opened link awaiting its label
        table_depth: Number of currently open table elements
    """

    parts: list[str] = field(default_factory=list)
    pending_url: str | None = None
    table_depth: int = 0

    def emit(self, text: str) -> None:
        if self.table_depth == 0:
            self.parts.append(text)


def render_markup(
    fragment: str,
    base_url: str = DEFAULT_BASE_URL,
    table_placeholder: str = DEFAULT_TABLE_PLACEHOLDER,
) -> str:
    """Render an HTML fragment as Slack mrkdwn.

    Args:
        fragment: HTML taken from an entry's content element
        base_url: Origin prepended to hrefs that start with "/"
        table_placeholder: Text emitted in place of each outermost table

    Returns:
        The rendered markup (not trimmed)

    Examples:
        >>> render_markup("<b>Exam Friday</b>")
        '*Exam Friday*'
        >>> render_markup('<a href="/syllabus">here</a>')
        '<https://gatech.instructure.com/syllabus|here>'
    """
    soup = BeautifulSoup(fragment, "html.parser")
    state = _RenderState()
    for node in soup.children:
        _walk(node, state, base_url.rstrip("/"), table_placeholder)
    return "".join(state.parts)


def _walk(node, state: _RenderState, base_url: str, table_placeholder: str) -> None:
    if isinstance(node, Tag):
        _open(node, state, table_placeholder)
        for child in node.children:
            _walk(child, state, base_url, table_placeholder)
        _close(node, state, base_url)
    elif isinstance(node, NavigableString) and not isinstance(node, _SKIPPED_STRINGS):
        _text(str(node), state, base_url)


def _open(tag: Tag, state: _RenderState, table_placeholder: str) -> None:
    name = tag.name
    if name in _BOLD_TAGS:
        state.emit("*")
    elif name in _ITALIC_TAGS:
        state.emit("_")
    elif name == "br":
        state.emit("\n")
    elif name == "a" and tag.get("href") is not None:
        if state.table_depth == 0:
            # Nested links are not supported: the innermost href wins.
            state.pending_url = tag["href"]
        state.emit("<")
    elif name == "table":
        state.emit(table_placeholder)
        state.table_depth += 1


def _close(tag: Tag, state: _RenderState, base_url: str) -> None:
    name = tag.name
    if name in _BOLD_TAGS:
        state.emit("*")
    elif name in _ITALIC_TAGS:
        state.emit("_")
    elif name == "p":
        state.emit("\n")
    elif name == "a" and tag.get("href") is not None:
        if state.pending_url is not None:
            # Link without a text body: emit the bare URL.
            state.emit(_resolve(state.pending_url, base_url))
            state.pending_url = None
        state.emit(">")
    elif name == "table":
        state.table_depth -= 1


def _text(text: str, state: _RenderState, base_url: str) -> None:
    if state.table_depth > 0:
        return
    url = state.pending_url
    if url is None:
        state.emit(text)
        return
    resolved = _resolve(url, base_url)
    state.emit(resolved)
    if text not in (url, resolved):
        state.emit("|")
        state.emit(text)
    state.pending_url = None


def _resolve(url: str, base_url: str) -> str:
    if url.startswith("/"):
        return base_url + url
    return url
