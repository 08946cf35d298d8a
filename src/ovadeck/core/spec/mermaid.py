"""
mermaid.py — Restricted flowchart parser.

Supported subset:
  - header:  "flowchart LR" / "graph TD" (first statement; tb/td -> TB, else LR)
  - nodes:   A["Label"] or A[Label]
  - edges:   A --> B, A -.-> B, A ==> B, A -->|texto| B, chains A --> B --> C
Everything else (classDef, style, subgraph, click, ...) is ignored.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

MAX_NODES = 6
ORDER_LIMIT = 5


class Direction(str, Enum):
    LR = "LR"
    TB = "TB"


@dataclass(frozen=True)
class MermaidNode:
    id: str
    label: str


@dataclass(frozen=True)
class MermaidGraph:
    direction: Direction
    nodes: tuple[MermaidNode, ...]
    edges: tuple[tuple[str, str], ...]


_DIRECTION_RE = re.compile(r"\b(tb|td)\b")
_NODE_DECL_RE = re.compile(r'([A-Za-z_][\w-]*)\s*\[\s*(?:"([^"]*)"|([^\]"]*))\s*\]')
_ARROW_RE = re.compile(r"\s*[-.=<>]{2,}\s*(?:\|[^|]*\|\s*)?")
_ID_RE = re.compile(r"^[A-Za-z_][\w-]*$")
_SKIP_WORDS = {"flowchart", "graph", "classdef", "class", "style", "subgraph", "end", "click", "linkstyle"}


def _is_directive(stmt: str) -> bool:
    if stmt.startswith("%%"):
        return True
    return stmt.split(None, 1)[0].lower() in _SKIP_WORDS


def _statements(code: str) -> list[str]:
    out: list[str] = []
    for line in code.replace("\r\n", "\n").split("\n"):
        for part in line.split(";"):
            s = part.strip()
            if s:
                out.append(s)
    return out


def parse_mermaid(code: str | None) -> MermaidGraph | None:
    """Parse the subset above; None when no node could be found."""
    stmts = _statements(code or "")
    if not stmts:
        return None

    direction = Direction.TB if _DIRECTION_RE.search(stmts[0].lower()) else Direction.LR

    labels: dict[str, str] = {}
    order: list[str] = []
    edges: list[tuple[str, str]] = []

    def register(node_id: str, label: str | None) -> None:
        if node_id not in labels:
            labels[node_id] = label if label else node_id
            order.append(node_id)
        elif label and labels[node_id] == node_id:
            labels[node_id] = label

    for stmt in stmts:
        if _is_directive(stmt):
            continue

        for m in _NODE_DECL_RE.finditer(stmt):
            label = (m.group(2) if m.group(2) is not None else m.group(3) or "").strip()
            register(m.group(1), label)

        bare = _NODE_DECL_RE.sub(lambda m: m.group(1), stmt)
        parts = [p.strip() for p in _ARROW_RE.split(bare)]
        if len(parts) < 2:
            continue
        ids = [p for p in parts if _ID_RE.match(p)]
        if len(ids) != len(parts):
            continue
        for a, b in zip(ids, ids[1:]):
            register(a, None)
            register(b, None)
            if (a, b) not in edges:
                edges.append((a, b))

    if not order:
        return None

    kept = order[:MAX_NODES]
    alive = set(kept)
    return MermaidGraph(
        direction=direction,
        nodes=tuple(MermaidNode(id=i, label=labels[i]) for i in kept),
        edges=tuple((a, b) for a, b in edges if a in alive and b in alive),
    )


def order_mermaid_nodes(graph: MermaidGraph, limit: int = ORDER_LIMIT) -> list[MermaidNode]:
    """Best-effort process order: walk first outgoing edges from a source node."""
    nodes = list(graph.nodes)
    if not graph.edges:
        return nodes[:limit]

    by_id = {n.id: n for n in nodes}
    succ: dict[str, list[str]] = {n.id: [] for n in nodes}
    indeg: dict[str, int] = {n.id: 0 for n in nodes}
    for a, b in graph.edges:
        succ[a].append(b)
        indeg[b] += 1

    start = next((n.id for n in nodes if indeg[n.id] == 0), nodes[0].id)
    visited: list[str] = []
    cur: str | None = start
    while cur is not None and len(visited) < limit:
        visited.append(cur)
        cur = next((s for s in succ[cur] if s not in visited), None)

    for n in nodes:
        if len(visited) >= limit:
            break
        if n.id not in visited:
            visited.append(n.id)
    return [by_id[i] for i in visited]
