"""Import declaration records produced by parser front-ends."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeclarationKind(str, Enum):
    """Syntactic form of an import declaration."""

    IMPORT = "import"
    REEXPORT = "reexport"
    REQUIRE = "require"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class ImportDeclaration:
    """A single static import specifier as written in a module.

    ``specifier`` is None when the target is computed and cannot be read as a
    literal. ``symbols`` holds the names taken from the target (empty for a
    whole-module import, ``"*"`` for a star re-export). For re-exports,
    ``exported_as`` holds the names this module publishes, aligned with
    ``symbols``.
    """

    specifier: str | None
    kind: DeclarationKind
    line: int
    column: int = 0
    symbols: tuple[str, ...] = ()
    exported_as: tuple[str, ...] = ()

    @property
    def is_literal(self) -> bool:
        return self.specifier is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "specifier": self.specifier,
            "kind": self.kind.value,
            "line": self.line,
            "column": self.column,
            "symbols": list(self.symbols),
            "exported_as": list(self.exported_as),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportDeclaration:
        return cls(
            specifier=data["specifier"],
            kind=DeclarationKind(data["kind"]),
            line=int(data["line"]),
            column=int(data.get("column", 0)),
            symbols=tuple(data.get("symbols", ())),
            exported_as=tuple(data.get("exported_as", ())),
        )


@dataclass(frozen=True)
class ParsedModule:
    """Everything the graph builder needs to know about one module's source."""

    declarations: tuple[ImportDeclaration, ...] = ()
    exports: frozenset[str] = field(default_factory=frozenset)
    is_barrel: bool = False

    def reexports(self) -> tuple[ImportDeclaration, ...]:
        return tuple(
            decl
            for decl in self.declarations
            if decl.kind == DeclarationKind.REEXPORT and decl.is_literal
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "declarations": [decl.to_dict() for decl in self.declarations],
            "exports": sorted(self.exports),
            "is_barrel": self.is_barrel,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedModule:
        return cls(
            declarations=tuple(
                ImportDeclaration.from_dict(item) for item in data["declarations"]
            ),
            exports=frozenset(data.get("exports", ())),
            is_barrel=bool(data.get("is_barrel", False)),
        )


__all__ = ["DeclarationKind", "ImportDeclaration", "ParsedModule"]
