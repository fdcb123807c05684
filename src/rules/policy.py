"""Policy engine: layer boundaries, encapsulation, cross-scope and external rules."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

from graph.models import EdgeKind
from report.models import Diagnostic, RuleId, Severity
from rules.layers import LayerTag, TransitionTable, is_violation

if TYPE_CHECKING:
    from graph.models import Graph, ImportEdge, Module
    from rules.config import DynamicImportMode, LayerguardConfig
    from rules.layers import UnclassifiedBehavior

_HARD_EDGE_KINDS = frozenset({EdgeKind.DIRECT, EdgeKind.REEXPORT})


@dataclass(frozen=True)
class PolicySettings:
    """Everything the engine evaluates against; one value per analysis."""

    table: TransitionTable
    unclassified: UnclassifiedBehavior = "deny"
    cross_scope_tags: frozenset[LayerTag] = frozenset(
        {LayerTag.ENTITY, LayerTag.FEATURE}
    )
    cross_scope_allow: Mapping[str, frozenset[str]] = field(default_factory=dict)
    cross_scope_severity: Severity = Severity.ERROR
    dynamic_imports: DynamicImportMode = "lenient"
    check_external: bool = False
    external_allow: Mapping[LayerTag, tuple[str, ...]] = field(default_factory=dict)
    external_deny: Mapping[LayerTag, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: LayerguardConfig) -> PolicySettings:
        return cls(
            table=config.transition_table(),
            unclassified=config.unclassified,
            cross_scope_tags=frozenset(config.cross_scope_tags),
            cross_scope_allow={
                key: frozenset(scopes)
                for key, scopes in config.cross_scope_allow.items()
            },
            cross_scope_severity=Severity(config.cross_scope_severity),
            dynamic_imports=config.dynamic_imports,
            check_external=config.check_external,
            external_allow={
                tag: tuple(globs) for tag, globs in config.external.allow.items()
            },
            external_deny={
                tag: tuple(globs) for tag, globs in config.external.deny.items()
            },
        )


def _describe(module: Module) -> str:
    if module.scope is None:
        return f"{module.tag.value} module {module.id}"
    return f"{module.tag.value} '{module.scope}' ({module.id})"


class PolicyEngine:
    """Evaluates graph edges against an explicit set of policy settings."""

    def __init__(self, settings: PolicySettings) -> None:
        self.settings = settings

    def evaluate(self, graph: Graph) -> list[Diagnostic]:
        """Check every edge in insertion order."""
        diagnostics: list[Diagnostic] = []
        for edge in graph.iter_edges():
            diagnostics.extend(self.check_edge(edge, graph))
        return diagnostics

    def check_edge(self, edge: ImportEdge, graph: Graph) -> list[Diagnostic]:
        source = graph.module(edge.source)
        if source is None or not edge.resolved:
            return []
        if edge.kind == EdgeKind.EXTERNAL:
            if not self.settings.check_external:
                return []
            return self._check_external(edge, source)

        target = graph.module(edge.target)
        if target is None:
            return []

        diagnostics = self._check_encapsulation(edge, source, target)
        diagnostics.extend(self._check_flattened(edge, source, graph))
        if source.shares_package(target):
            return diagnostics

        if (
            source.tag == target.tag
            and source.tag in self.settings.cross_scope_tags
            and source.scope != target.scope
        ):
            diagnostics.extend(self._check_cross_scope(edge, source, target))
            return diagnostics

        diagnostics.extend(self._check_layer_boundary(edge, source, target))
        return diagnostics

    def _edge_diagnostic(
        self,
        edge: ImportEdge,
        rule_id: RuleId,
        severity: Severity,
        message: str,
        related: tuple[str, ...] | None = None,
    ) -> Diagnostic:
        return Diagnostic(
            file=edge.source,
            line=edge.line,
            column=edge.column or None,
            rule_id=rule_id.value,
            severity=severity,
            message=message,
            related_modules=related or (edge.source, edge.target),
        )

    def _check_encapsulation(
        self, edge: ImportEdge, source: Module, target: Module
    ) -> list[Diagnostic]:
        if (
            not target.is_encapsulated
            or target.is_package_root
            or source.shares_package(target)
        ):
            return []
        entry = (
            f"import its entry module {target.root_path} instead"
            if target.root_path
            else "the package has no public entry module"
        )
        return [
            self._edge_diagnostic(
                edge,
                RuleId.ENCAPSULATION,
                Severity.ERROR,
                f"{edge.target} is internal to {_describe(target)}; {entry}",
            )
        ]

    def _check_flattened(
        self, edge: ImportEdge, source: Module, graph: Graph
    ) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for hop in edge.via:
            barrel = graph.module(hop.barrel)
            reached = graph.module(hop.target)
            if barrel is None or reached is None:
                continue
            if (
                not reached.is_encapsulated
                or reached.is_package_root
                or barrel.shares_package(reached)
                or source.shares_package(reached)
            ):
                continue
            diagnostics.append(
                self._edge_diagnostic(
                    edge,
                    RuleId.ENCAPSULATION,
                    Severity.ERROR,
                    (
                        f"{edge.target} re-exports {hop.target} through "
                        f"{hop.barrel}, which is internal to {_describe(reached)}"
                    ),
                    related=(edge.source, hop.barrel, hop.target),
                )
            )
        return diagnostics

    def _cross_scope_allowed(self, source: Module, target: Module) -> bool:
        allow = self.settings.cross_scope_allow
        for key in (f"{source.tag.value}.{source.scope}", f"{source.scope}"):
            scopes = allow.get(key)
            if scopes and (target.scope in scopes or "*" in scopes):
                return True
        return False

    def _check_cross_scope(
        self, edge: ImportEdge, source: Module, target: Module
    ) -> list[Diagnostic]:
        if self._cross_scope_allowed(source, target):
            return []
        return [
            self._edge_diagnostic(
                edge,
                RuleId.CROSS_SCOPE,
                self.settings.cross_scope_severity,
                (
                    f"{_describe(source)} may not import {source.tag.value} "
                    f"'{target.scope}' ({edge.target}); whitelist it in "
                    "cross_scope_allow if intended"
                ),
            )
        ]

    def _check_layer_boundary(
        self, edge: ImportEdge, source: Module, target: Module
    ) -> list[Diagnostic]:
        if not is_violation(
            source.tag, target.tag, self.settings.table, self.settings.unclassified
        ):
            return []

        allowed = sorted(tag.value for tag in self.settings.table.allowed(source.tag))
        allowed_text = ", ".join(allowed) if allowed else "nothing"
        message = (
            f"{source.tag.value} module may not import {target.tag.value} module "
            f"{edge.target} (allowed: {allowed_text})"
        )
        if edge.kind in _HARD_EDGE_KINDS:
            return [
                self._edge_diagnostic(
                    edge, RuleId.LAYER_BOUNDARY, Severity.ERROR, message
                )
            ]
        if self.settings.dynamic_imports == "strict":
            return [
                self._edge_diagnostic(
                    edge,
                    RuleId.LAYER_BOUNDARY,
                    Severity.WARNING,
                    f"{message} [dynamic import, reduced confidence]",
                )
            ]
        return []

    def _check_external(self, edge: ImportEdge, source: Module) -> list[Diagnostic]:
        package = edge.target
        denied = self.settings.external_deny.get(source.tag, ())
        if any(fnmatchcase(package, pattern) for pattern in denied):
            reason = f"{source.tag.value} modules may not import '{package}'"
        else:
            allowed = self.settings.external_allow.get(source.tag)
            if allowed is None or any(
                fnmatchcase(package, pattern) for pattern in allowed
            ):
                return []
            reason = (
                f"'{package}' is not among the packages {source.tag.value} modules "
                f"may import ({', '.join(allowed) or 'none'})"
            )
        return [
            self._edge_diagnostic(
                edge, RuleId.EXTERNAL, Severity.ERROR, reason, related=(edge.source,)
            )
        ]


__all__ = ["PolicyEngine", "PolicySettings"]
