"""Cycle detection over the import graph, independent of layer tags."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graph.algos import find_cycles
from report.models import Diagnostic, RuleId, Severity

if TYPE_CHECKING:
    from graph.models import Graph


def _anchor_line(graph: Graph, anchor: str, members: frozenset[str]) -> int:
    for edge in graph.outgoing(anchor):
        if edge.is_workspace and edge.target in members:
            return edge.line
    return 0


def detect_cycles(graph: Graph) -> list[Diagnostic]:
    """Report every strongly connected component with more than one module and
    every self-import as a ``cycle`` error naming all members.
    """
    diagnostics: list[Diagnostic] = []
    for scc in find_cycles(graph.adjacency()):
        members = tuple(sorted(scc))
        anchor = members[0]
        if len(members) == 1:
            message = f"{anchor} imports itself"
        else:
            message = (
                f"import cycle between {len(members)} modules: {', '.join(members)}"
            )
        diagnostics.append(
            Diagnostic(
                file=anchor,
                line=_anchor_line(graph, anchor, frozenset(members)),
                rule_id=RuleId.CYCLE.value,
                severity=Severity.ERROR,
                message=message,
                related_modules=members,
            )
        )
    diagnostics.sort(key=lambda d: d.related_modules or ())
    return diagnostics


__all__ = ["detect_cycles"]
