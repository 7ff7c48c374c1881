from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence


class CircularFlowError(ValueError):
    """The flow graph contains a cycle and has no left-to-right layout."""


@dataclass(frozen=True)
class Node:
    name: str


@dataclass(frozen=True)
class Edge:
    source: int
    target: int
    value: float = 1


@dataclass
class Graph:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [n.name for n in self.nodes]

    @property
    def is_empty(self) -> bool:
        return not self.edges


def build_graph(rows: Iterable[Sequence[Any]]) -> Graph:
    """
    Convert rows into a Sankey graph.

    Every adjacent pair of non-empty fields becomes one edge of weight 1.
    Nodes are unique by name and kept in first-seen order (rows top-to-bottom,
    fields left-to-right). Parallel edges are NOT merged: two identical rows
    produce two edges.
    """
    nodes: list[Node] = []
    edges: list[Edge] = []
    idx: dict[str, int] = {}

    def node_index(name: str) -> int:
        if name not in idx:
            idx[name] = len(nodes)
            nodes.append(Node(name))
        return idx[name]

    for row in rows:
        row = list(row)
        for source, target in zip(row, row[1:]):
            if source and target:
                s = node_index(source)
                t = node_index(target)
                edges.append(Edge(source=s, target=t, value=1))

    return Graph(nodes=nodes, edges=edges)


def node_values(graph: Graph) -> list[float]:
    """Node value is max(total inflow, total outflow), as a Sankey sizes it."""
    inflow = [0.0] * len(graph.nodes)
    outflow = [0.0] * len(graph.nodes)
    for e in graph.edges:
        outflow[e.source] += e.value
        inflow[e.target] += e.value
    return [max(i, o) for i, o in zip(inflow, outflow)]


def node_depths(graph: Graph) -> list[int]:
    """
    Column index of every node: longest path from a source node, with nodes
    that have no outgoing edges pushed to the last column.
    Raises CircularFlowError if the graph has a cycle.
    """
    n = len(graph.nodes)
    levels = [0] * n

    # Relaxation: push targets right of sources. A DAG settles within n passes.
    for _ in range(n + 1):
        changed = False
        for e in graph.edges:
            if levels[e.target] <= levels[e.source]:
                levels[e.target] = levels[e.source] + 1
                changed = True
        if not changed:
            break
    else:
        raise CircularFlowError("Circular flow detected: the diagram cannot be laid out left to right.")

    if n == 0:
        return levels

    has_out = [False] * n
    for e in graph.edges:
        has_out[e.source] = True
    last = max(levels)
    return [lvl if has_out[i] else last for i, lvl in enumerate(levels)]


def find_cycle_nodes(graph: Graph) -> list[str]:
    """Names of nodes that sit on a cycle (including self-loops), in node order."""
    adj: list[list[int]] = [[] for _ in graph.nodes]
    for e in graph.edges:
        adj[e.source].append(e.target)

    on_cycle: set[int] = set()
    for start in range(len(graph.nodes)):
        seen: set[int] = set()
        stack = list(adj[start])
        while stack:
            cur = stack.pop()
            if cur == start:
                on_cycle.add(start)
                break
            if cur in seen:
                continue
            seen.add(cur)
            stack.extend(adj[cur])
    return [graph.nodes[i].name for i in sorted(on_cycle)]


# ---------- Validation ----------
@dataclass
class ValidationResult:
    errors: list[str]
    warnings: list[str]
    stats: dict[str, Any]


def validate_graph(graph: Graph, rows: Sequence[Sequence[Any]]) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []
    stats: dict[str, Any] = {}

    rows = [list(r) for r in rows]
    contributing = [any(s and t for s, t in zip(r, r[1:])) for r in rows]
    idle_rows = [i for i, ok in enumerate(contributing) if not ok]
    if idle_rows:
        warnings.append(
            "Some rows have fewer than two adjacent non-empty fields and add no flows "
            f"(rows: {', '.join(map(str, idle_rows[:20]))}{'…' if len(idle_rows) > 20 else ''})."
        )

    pairs = Counter((e.source, e.target) for e in graph.edges)
    parallel = [(s, t) for (s, t), c in pairs.items() if c > 1]
    if parallel:
        names = graph.names
        shown = [f"{names[s]} → {names[t]}" for s, t in parallel[:10]]
        warnings.append(
            "Repeated (source,target) pairs are drawn as separate links, not merged: "
            f"{', '.join(shown)}{'…' if len(parallel) > 10 else ''}"
        )

    cyclic = find_cycle_nodes(graph)
    if cyclic:
        errors.append(
            "Circular flows found. A Sankey diagram needs flows that only move forward; "
            f"nodes on a cycle: {', '.join(cyclic[:10])}{'…' if len(cyclic) > 10 else ''}"
        )

    stats["rows"] = len(rows)
    stats["valid_rows"] = sum(contributing)
    stats["nodes"] = len(graph.nodes)
    stats["edges"] = len(graph.edges)
    stats["total_flow"] = float(sum(e.value for e in graph.edges))

    return ValidationResult(errors=errors, warnings=warnings, stats=stats)
