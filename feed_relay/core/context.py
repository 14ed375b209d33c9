"""Region stack used to disambiguate same-named feed elements."""

from __future__ import annotations

from .types import Region


class ContextStackError(RuntimeError):
    """Raised when the stack is popped past its seed region."""


class ContextStack:
    """Stack of open regions, seeded with ``Region.METADATA``.

    Only elements whose meaning depends on their ancestry push a region.
    The seed is never popped while a document is being traversed, so a pop
    that would empty the stack means open/close events were not balanced.
    """

    def __init__(self) -> None:
        self._regions: list[Region] = [Region.METADATA]

    def push(self, region: Region) -> None:
        self._regions.append(region)

    def pop(self) -> Region:
        if len(self._regions) == 1:
            raise ContextStackError("Cannot pop the document metadata region")
        return self._regions.pop()

    @property
    def top(self) -> Region:
        return self._regions[-1]

    def current_is(self, region: Region) -> bool:
        return self._regions[-1] is region

    def __len__(self) -> int:
        return len(self._regions)
