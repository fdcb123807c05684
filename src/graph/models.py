"""Module and import-graph models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from rules.layers import ENCAPSULATED_TAGS, LayerTag


class EdgeKind(str, Enum):
    """How a source module reaches its target."""

    DIRECT = "direct"
    REEXPORT = "reexport"
    DYNAMIC = "dynamic"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Module:
    """A tagged workspace module, identified by its workspace-relative path."""

    id: str
    tag: LayerTag
    scope: str | None = None
    package: str | None = None
    root_path: str | None = None
    public_exports: frozenset[str] = field(default_factory=frozenset)
    is_barrel: bool = False

    @property
    def is_package_root(self) -> bool:
        return self.root_path is not None and self.root_path == self.id

    @property
    def is_encapsulated(self) -> bool:
        return self.tag in ENCAPSULATED_TAGS and self.package is not None

    def shares_package(self, other: Module) -> bool:
        return self.package is not None and self.package == other.package


@dataclass(frozen=True)
class ReExportHop:
    """One flattened step: `barrel` re-exports `target`."""

    barrel: str
    target: str


@dataclass(frozen=True)
class ImportEdge:
    """A static dependency between a module and its target.

    ``target`` is a module id for workspace edges, a package name for external
    edges and the raw specifier for unresolved edges, which carry no
    connectivity.
    """

    source: str
    target: str
    kind: EdgeKind
    specifier: str
    line: int
    column: int = 0
    imported_symbols: frozenset[str] = field(default_factory=frozenset)
    via: tuple[ReExportHop, ...] = ()
    resolved: bool = True

    @property
    def is_workspace(self) -> bool:
        return self.resolved and self.kind != EdgeKind.EXTERNAL


@dataclass(frozen=True)
class UnresolvedImport:
    """An import specifier that no resolution strategy could map."""

    source: str
    specifier: str
    line: int
    column: int
    reason: str


@dataclass(frozen=True)
class LowConfidenceImport:
    """A dynamic import whose target is computed or only known at runtime."""

    source: str
    line: int
    column: int
    specifier: str | None = None
    target: str | None = None


class Graph:
    """Immutable mapping of module id -> ordered outgoing import edges."""

    __slots__ = ("_edges", "_modules")

    def __init__(
        self,
        modules: Mapping[str, Module],
        edges: Mapping[str, tuple[ImportEdge, ...]],
    ) -> None:
        self._modules: Mapping[str, Module] = MappingProxyType(dict(modules))
        self._edges: Mapping[str, tuple[ImportEdge, ...]] = MappingProxyType(
            {module_id: tuple(edges.get(module_id, ())) for module_id in modules}
        )

    @property
    def modules(self) -> Mapping[str, Module]:
        return self._modules

    def module(self, module_id: str) -> Module | None:
        return self._modules.get(module_id)

    def outgoing(self, module_id: str) -> tuple[ImportEdge, ...]:
        return self._edges.get(module_id, ())

    def iter_edges(self) -> Iterator[ImportEdge]:
        """Yield edges in insertion order (module order, then declaration order)."""
        for module_id in self._modules:
            yield from self._edges[module_id]

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._edges.values())

    def adjacency(self) -> dict[str, set[str]]:
        """Resolved workspace connectivity used by cycle detection."""
        graph: dict[str, set[str]] = {module_id: set() for module_id in self._modules}
        for edge in self.iter_edges():
            if edge.is_workspace and edge.target in graph:
                graph[edge.source].add(edge.target)
        return graph


__all__ = [
    "EdgeKind",
    "Graph",
    "ImportEdge",
    "LowConfidenceImport",
    "Module",
    "ReExportHop",
    "UnresolvedImport",
]
