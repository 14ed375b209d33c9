"""
Forward-only token stream over an XML feed document.

Wraps the standard library SAX parser (expat) and turns its callbacks into
a sequence of plain events:
- StartElement: element open with its attributes in document order
- Characters: one coalesced run of character data
- EndElement: element close

Namespace processing is enabled so element names are local names, which
keeps Atom's default namespace out of the builder's way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union
import xml.sax
from xml.sax.handler import ContentHandler, feature_namespaces

from ..errors import FeedParseError


@dataclass(frozen=True)
class StartElement:
    name: str
    attributes: tuple[tuple[str, str], ...] = ()

    def attr(self, name: str) -> str | None:
        """Return the value of the first attribute with this local name."""
        for key, value in self.attributes:
            if key == name:
                return value
        return None


@dataclass(frozen=True)
class Characters:
    text: str


@dataclass(frozen=True)
class EndElement:
    name: str


Event = Union[StartElement, Characters, EndElement]


class _EventCollector(ContentHandler):
    """SAX handler that buffers events until the caller drains them."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[Event] = []
        self._text: list[str] = []

    def startElementNS(self, name, qname, attrs):  # noqa: N802
        self._flush_text()
        attributes = tuple((key[1], value) for key, value in attrs.items())
        self.events.append(StartElement(name=name[1], attributes=attributes))

    def endElementNS(self, name, qname):  # noqa: N802
        self._flush_text()
        self.events.append(EndElement(name=name[1]))

    def characters(self, content):
        self._text.append(content)

    def endDocument(self):  # noqa: N802
        self._flush_text()

    def drain(self) -> list[Event]:
        events, self.events = self.events, []
        return events

    def _flush_text(self) -> None:
        if self._text:
            self.events.append(Characters("".join(self._text)))
            self._text = []


def iter_events(document: str, chunk_size: int = 8192) -> Iterator[Event]:
    """Yield structural events for a feed document.

    The document is fed to the parser in chunks and events are yielded as
    soon as each chunk has been consumed, so callers see them in document
    order without the whole event list being materialized.

    Args:
        document: The raw feed document text
        chunk_size: Number of characters handed to the parser per step

    Raises:
        FeedParseError: If the document is not well-formed XML
    """
    collector = _EventCollector()
    parser = xml.sax.make_parser()
    parser.setFeature(feature_namespaces, True)
    parser.setContentHandler(collector)

    try:
        for start in range(0, len(document), chunk_size):
            parser.feed(document[start : start + chunk_size])
            yield from collector.drain()
        parser.close()
    except xml.sax.SAXParseException as exc:
        raise FeedParseError(f"Malformed feed document: {exc}") from exc
    yield from collector.drain()
