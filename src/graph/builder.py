"""Import graph construction.

Each module is parsed and resolved independently into a fragment, possibly on
worker threads. Fragments are merged in a single thread into an immutable
:class:`graph.models.Graph` before any analysis sees it, and edges into barrel
modules are then flattened onto the modules the barrels re-export.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from errors import AnalysisAborted, InternalError, ParseError, ResolutionError
from graph.cache import DeclarationCache, content_key
from graph.models import (
    EdgeKind,
    Graph,
    ImportEdge,
    LowConfidenceImport,
    Module,
    ReExportHop,
    UnresolvedImport,
)
from parse.models import DeclarationKind, ImportDeclaration, ParsedModule
from report.models import (
    DegradedModule,
    Diagnostic,
    LowConfidenceEdge,
    RuleId,
    Severity,
)
from resolve.base import External, Resolved, Unresolved

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from parse.base import ImportParser
    from resolve.base import Resolution, Resolver
    from rules.config import DynamicImportMode

logger = logging.getLogger(__name__)

_DECLARATION_EDGE_KINDS = {
    DeclarationKind.IMPORT: EdgeKind.DIRECT,
    DeclarationKind.REQUIRE: EdgeKind.DIRECT,
    DeclarationKind.REEXPORT: EdgeKind.REEXPORT,
    DeclarationKind.DYNAMIC: EdgeKind.DYNAMIC,
}


@dataclass(frozen=True)
class ReExportLink:
    """A resolved `export ... from` of a module, kept for barrel flattening."""

    target: str
    symbols: tuple[str, ...]
    exported_as: tuple[str, ...]

    @property
    def is_star(self) -> bool:
        return self.symbols == ("*",) and not self.exported_as

    @property
    def is_namespace(self) -> bool:
        return self.symbols == ("*",) and bool(self.exported_as)


@dataclass
class ModuleFragment:
    """Partial graph for one module, produced without looking at other modules."""

    module_id: str
    parsed: ParsedModule | None = None
    edges: list[ImportEdge] = field(default_factory=list)
    reexports: list[ReExportLink] = field(default_factory=list)
    unresolved: list[UnresolvedImport] = field(default_factory=list)
    low_confidence: list[LowConfidenceImport] = field(default_factory=list)
    degraded: DegradedModule | None = None


@dataclass
class BuildResult:
    graph: Graph
    diagnostics: list[Diagnostic] = field(default_factory=list)
    degraded: list[DegradedModule] = field(default_factory=list)
    low_confidence: list[LowConfidenceEdge] = field(default_factory=list)


def _resolve(resolver: Resolver, specifier: str, module_id: str) -> Resolution:
    try:
        resolution = resolver.resolve(specifier, module_id)
    except ResolutionError as exc:
        return Unresolved(exc.reason)
    if resolution is None:
        return Unresolved(f"no strategy resolves '{specifier}'")
    return resolution


def _edge_for(
    module_id: str,
    decl: ImportDeclaration,
    specifier: str,
    resolution: Resolved | External,
) -> ImportEdge:
    if isinstance(resolution, External):
        return ImportEdge(
            source=module_id,
            target=resolution.package,
            kind=EdgeKind.EXTERNAL,
            specifier=specifier,
            line=decl.line,
            column=decl.column,
        )
    symbols = frozenset(s for s in decl.symbols if s != "*")
    return ImportEdge(
        source=module_id,
        target=resolution.module_id,
        kind=_DECLARATION_EDGE_KINDS[decl.kind],
        specifier=specifier,
        line=decl.line,
        column=decl.column,
        imported_symbols=symbols,
    )


def _parse_module(
    module_id: str,
    file_path: Path,
    parser: ImportParser,
    cache: DeclarationCache | None,
) -> ParsedModule:
    try:
        source = file_path.read_bytes()
    except OSError as exc:
        raise ParseError(module_id, f"cannot read module: {exc}") from exc

    key = content_key(source, parser.version) if cache is not None else ""
    if cache is not None:
        cached = cache.get(module_id, key)
        if cached is not None:
            return cached

    parsed = parser.parse(source, module_id)
    if cache is not None:
        cache.put(module_id, key, parsed)
    return parsed


def build_fragment(
    module_id: str,
    file_path: Path,
    parser: ImportParser,
    resolver: Resolver,
    cache: DeclarationCache | None = None,
) -> ModuleFragment:
    """Parse and resolve one module. Per-module failures degrade, never raise."""
    fragment = ModuleFragment(module_id=module_id)
    if not parser.supports(module_id):
        fragment.degraded = DegradedModule(
            file=module_id, message="no import front-end for this file type"
        )
        return fragment
    try:
        parsed = _parse_module(module_id, file_path, parser, cache)
    except ParseError as exc:
        logger.debug("degraded %s: %s", module_id, exc.message)
        fragment.degraded = DegradedModule(
            file=module_id, message=exc.message, line=exc.line
        )
        return fragment

    fragment.parsed = parsed
    for decl in parsed.declarations:
        specifier = decl.specifier
        if specifier is None:
            fragment.low_confidence.append(
                LowConfidenceImport(
                    source=module_id, line=decl.line, column=decl.column
                )
            )
            continue

        resolution = _resolve(resolver, specifier, module_id)
        if isinstance(resolution, Unresolved):
            fragment.unresolved.append(
                UnresolvedImport(
                    source=module_id,
                    specifier=specifier,
                    line=decl.line,
                    column=decl.column,
                    reason=resolution.reason,
                )
            )
            fragment.edges.append(
                ImportEdge(
                    source=module_id,
                    target=specifier,
                    kind=_DECLARATION_EDGE_KINDS[decl.kind],
                    specifier=specifier,
                    line=decl.line,
                    column=decl.column,
                    resolved=False,
                )
            )
            continue

        edge = _edge_for(module_id, decl, specifier, resolution)
        fragment.edges.append(edge)
        if edge.kind == EdgeKind.DYNAMIC:
            fragment.low_confidence.append(
                LowConfidenceImport(
                    source=module_id,
                    line=decl.line,
                    column=decl.column,
                    specifier=specifier,
                    target=edge.target,
                )
            )
        elif edge.kind == EdgeKind.REEXPORT:
            fragment.reexports.append(
                ReExportLink(
                    target=edge.target,
                    symbols=decl.symbols,
                    exported_as=decl.exported_as,
                )
            )
    return fragment


def _run_fragments(
    modules: Sequence[str],
    files: Mapping[str, Path],
    parser: ImportParser,
    resolver: Resolver,
    cache: DeclarationCache | None,
    jobs: int,
) -> list[ModuleFragment]:
    def work(module_id: str) -> ModuleFragment:
        return build_fragment(module_id, files[module_id], parser, resolver, cache)

    if jobs == 1:
        return [work(module_id) for module_id in modules]

    executor = ThreadPoolExecutor(max_workers=jobs or None)
    completed = False
    try:
        fragments = list(executor.map(work, modules))
        completed = True
    except KeyboardInterrupt as exc:
        msg = "interrupted while building the import graph"
        raise AnalysisAborted(msg) from exc
    finally:
        executor.shutdown(wait=completed, cancel_futures=not completed)
    return fragments


class _Flattener:
    """Follows barrel re-export chains with a depth bound and a cycle guard."""

    def __init__(
        self,
        modules: Mapping[str, Module],
        reexports: Mapping[str, list[ReExportLink]],
        max_depth: int,
    ) -> None:
        self.modules = modules
        self.reexports = reexports
        self.max_depth = max_depth
        self.cycles: dict[frozenset[str], tuple[str, ...]] = {}

    def _is_barrel(self, module_id: str) -> bool:
        module = self.modules.get(module_id)
        return module is not None and module.is_barrel

    @staticmethod
    def _step(
        link: ReExportLink,
        wanted: frozenset[str] | None,
        named_published: frozenset[str],
    ) -> tuple[bool, frozenset[str] | None]:
        """Decide whether a link carries any wanted name and what is wanted next."""
        if link.is_namespace:
            if wanted is None or link.exported_as[0] in wanted:
                return True, None
            return False, None
        if link.is_star:
            if wanted is None:
                return True, None
            # `export *` never forwards the default export.
            remaining = wanted - named_published - {"default"}
            return bool(remaining), remaining
        if wanted is None:
            return True, frozenset(link.symbols)
        originals = frozenset(
            original
            for original, published in zip(link.symbols, link.exported_as, strict=True)
            if published in wanted
        )
        return bool(originals), originals

    def flatten(
        self, barrel: str, wanted: frozenset[str] | None
    ) -> tuple[ReExportHop, ...]:
        hops: list[ReExportHop] = []
        seen_hops: set[ReExportHop] = set()
        seen_states: set[tuple[str, frozenset[str] | None]] = set()
        stack: list[tuple[str, frozenset[str] | None, tuple[str, ...]]] = [
            (barrel, wanted, (barrel,))
        ]
        while stack:
            current, current_wanted, chain = stack.pop()
            if (current, current_wanted) in seen_states:
                continue
            seen_states.add((current, current_wanted))

            links = self.reexports.get(current, [])
            named_published = frozenset(
                name for link in links if not link.is_star for name in link.exported_as
            )
            next_items = []
            for link in links:
                carries, next_wanted = self._step(link, current_wanted, named_published)
                if not carries:
                    continue
                hop = ReExportHop(barrel=current, target=link.target)
                if hop not in seen_hops:
                    seen_hops.add(hop)
                    hops.append(hop)
                if link.target in chain:
                    members = chain[chain.index(link.target) :]
                    self.cycles.setdefault(frozenset(members), members)
                    continue
                if not self._is_barrel(link.target):
                    continue
                if len(chain) >= self.max_depth:
                    logger.debug(
                        "re-export chain from %s truncated at depth %d",
                        barrel,
                        self.max_depth,
                    )
                    continue
                next_items.append((link.target, next_wanted, (*chain, link.target)))
            stack.extend(reversed(next_items))
        return tuple(hops)


def merge_fragments(
    modules: Mapping[str, Module],
    fragments: Sequence[ModuleFragment],
    *,
    reexport_max_depth: int = 8,
    dynamic_imports: DynamicImportMode = "lenient",
) -> BuildResult:
    """Merge per-module fragments into one immutable graph.

    Raises:
        InternalError: If two fragments claim the same canonical module id or a
            fragment names a module discovery never produced.
    """
    merged_modules: dict[str, Module] = {}
    edges: dict[str, tuple[ImportEdge, ...]] = {}
    reexports: dict[str, list[ReExportLink]] = {}
    diagnostics: list[Diagnostic] = []
    degraded: list[DegradedModule] = []
    low_confidence: list[LowConfidenceEdge] = []

    for fragment in fragments:
        module_id = fragment.module_id
        if module_id in merged_modules:
            msg = f"duplicate canonical module id {module_id!r} in graph merge"
            raise InternalError(msg)
        module = modules.get(module_id)
        if module is None:
            msg = f"graph fragment for undiscovered module {module_id!r}"
            raise InternalError(msg)

        if fragment.parsed is not None:
            module = dataclasses.replace(
                module,
                public_exports=fragment.parsed.exports,
                is_barrel=fragment.parsed.is_barrel,
            )
        merged_modules[module_id] = module
        edges[module_id] = tuple(fragment.edges)
        reexports[module_id] = list(fragment.reexports)

        if fragment.degraded is not None:
            degraded.append(fragment.degraded)
        for unresolved in fragment.unresolved:
            diagnostics.append(
                Diagnostic(
                    file=unresolved.source,
                    line=unresolved.line,
                    column=unresolved.column,
                    rule_id=RuleId.UNRESOLVED.value,
                    severity=Severity.WARNING,
                    message=(
                        f"cannot resolve '{unresolved.specifier}': {unresolved.reason}"
                    ),
                )
            )
        for item in fragment.low_confidence:
            low_confidence.append(
                LowConfidenceEdge(
                    file=item.source,
                    line=item.line,
                    column=item.column,
                    specifier=item.specifier,
                    target=item.target,
                )
            )
            if item.specifier is None and dynamic_imports == "strict":
                diagnostics.append(
                    Diagnostic(
                        file=item.source,
                        line=item.line,
                        column=item.column,
                        rule_id=RuleId.DYNAMIC_IMPORT.value,
                        severity=Severity.WARNING,
                        message="import target is computed and cannot be checked",
                    )
                )

    missing = set(modules) - set(merged_modules)
    if missing:
        msg = f"graph merge lost {len(missing)} discovered modules"
        raise InternalError(msg)

    flattener = _Flattener(merged_modules, reexports, reexport_max_depth)
    for module_id, module_edges in edges.items():
        flattened: list[ImportEdge] = []
        for edge in module_edges:
            target = merged_modules.get(edge.target)
            if edge.is_workspace and target is not None and target.is_barrel:
                wanted = edge.imported_symbols or None
                edge = dataclasses.replace(
                    edge, via=flattener.flatten(edge.target, wanted)
                )
            flattened.append(edge)
        edges[module_id] = tuple(flattened)

    for members in flattener.cycles.values():
        ordered = tuple(sorted(members))
        diagnostics.append(
            Diagnostic(
                file=ordered[0],
                rule_id=RuleId.REEXPORT_CYCLE.value,
                severity=Severity.WARNING,
                message=(
                    "re-export chain revisits "
                    f"{' -> '.join((*members, members[0]))}; flattening stopped"
                ),
                related_modules=ordered,
            )
        )

    graph = Graph(merged_modules, edges)
    logger.info(
        "built import graph: %d modules, %d edges, %d degraded",
        len(merged_modules),
        graph.edge_count,
        len(degraded),
    )
    return BuildResult(
        graph=graph,
        diagnostics=diagnostics,
        degraded=degraded,
        low_confidence=low_confidence,
    )


def build_graph(
    modules: Mapping[str, Module],
    files: Mapping[str, Path],
    parser: ImportParser,
    resolver: Resolver,
    *,
    cache: DeclarationCache | None = None,
    jobs: int = 0,
    reexport_max_depth: int = 8,
    dynamic_imports: DynamicImportMode = "lenient",
) -> BuildResult:
    """Build the import graph for discovered modules.

    Args:
        modules: Tagged modules from discovery, in deterministic order
        files: Module id -> file path on disk
        parser: Front-end extracting import declarations
        resolver: Specifier resolution capability
        cache: Optional declaration cache; saved only after a complete build
        jobs: Worker threads (0 = executor default, 1 = serial)
        reexport_max_depth: Bound on barrel flattening chains
        dynamic_imports: "strict" also warns about computed import targets

    Returns:
        BuildResult with the immutable graph and builder diagnostics.
    """
    module_ids = list(modules)
    fragments = _run_fragments(module_ids, files, parser, resolver, cache, jobs)
    result = merge_fragments(
        modules,
        fragments,
        reexport_max_depth=reexport_max_depth,
        dynamic_imports=dynamic_imports,
    )
    if cache is not None:
        cache.save()
    return result


__all__ = [
    "BuildResult",
    "ModuleFragment",
    "ReExportLink",
    "build_fragment",
    "build_graph",
    "merge_fragments",
]
