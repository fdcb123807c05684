"""Graph algorithms for layerguard."""

from __future__ import annotations

from errors import InternalError


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []

    def visit(self, node: str) -> None:
        self.indices[node] = self.index
        self.low_link[node] = self.index
        self.index += 1
        self.stack.append(node)
        self.on_stack.add(node)


def _extract_scc(state: _TarjanState, root: str) -> list[str]:
    """Extract a strongly connected component from the stack."""
    scc: list[str] = []
    while state.stack:
        w = state.stack.pop()
        state.on_stack.remove(w)
        scc.append(w)
        if w == root:
            break
    if root not in scc:
        msg = (
            f"Tarjan algorithm invariant violated: root node {root!r} "
            "not found in stack during SCC extraction."
        )
        raise InternalError(msg)
    return scc


def _strongconnect(node: str, graph: dict[str, set[str]], state: _TarjanState) -> None:
    """Process a node in Tarjan's algorithm.

    Iterative so that long import chains cannot exhaust the interpreter stack.
    Neighbours are visited in sorted order.
    """
    state.visit(node)
    work: list[tuple[str, list[str], int]] = [
        (node, sorted(graph.get(node, set())), 0)
    ]
    while work:
        current, neighbors, position = work[-1]
        if position < len(neighbors):
            work[-1] = (current, neighbors, position + 1)
            neighbor = neighbors[position]
            if neighbor not in state.indices:
                state.visit(neighbor)
                work.append((neighbor, sorted(graph.get(neighbor, set())), 0))
            elif neighbor in state.on_stack:
                state.low_link[current] = min(
                    state.low_link[current], state.indices[neighbor]
                )
            continue

        work.pop()
        if work:
            parent = work[-1][0]
            state.low_link[parent] = min(
                state.low_link[parent], state.low_link[current]
            )
        if state.low_link[current] == state.indices[current]:
            scc = _extract_scc(state, current)
            if len(scc) > 1 or current in graph.get(current, set()):
                state.sccs.append(scc)


def find_cycles(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find cycles in a directed graph using Tarjan's algorithm.

    Args:
        graph: Dictionary representing the graph

    Returns:
        List of cycles (SCCs with more than one node, or self-loops), where
        each cycle is a list of nodes
    """
    state = _TarjanState()

    for node in sorted(graph):
        if node not in state.indices:
            _strongconnect(node, graph, state)

    return state.sccs


__all__ = [
    "_TarjanState",
    "_extract_scc",
    "_strongconnect",
    "find_cycles",
]
