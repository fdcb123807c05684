"""Front-end protocol for import extraction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from parse.models import ParsedModule


class ImportParser(Protocol):
    """Turns raw module text into import declarations.

    Implementations raise ``errors.ParseError`` when a module's import syntax
    cannot be extracted. ``version`` participates in cache keys, so bump it
    whenever the extracted output changes for the same input.
    """

    version: str

    def supports(self, path: str) -> bool: ...

    def parse(self, source: bytes, path: str) -> ParsedModule: ...


__all__ = ["ImportParser"]
