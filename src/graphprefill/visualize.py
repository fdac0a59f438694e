from __future__ import annotations
from typing import List

import networkx as nx

from .ancestors import ancestors_of
from .index import GraphIndex


def _node_line(index: GraphIndex, nid: str) -> str:
    form = index.form_of(nid)
    node = index.node(nid)
    form_label = form.name or form.id if form else "no form"
    return f"{node.id} [{node.label} | {form_label}]"


def ascii_plan(index: GraphIndex) -> str:
    """Nodes in execution (topological) order with their outgoing edges."""
    try:
        order = list(nx.topological_sort(index.graph))
        lines = ["# ASCII Plan (topological order)"]
    except nx.NetworkXUnfeasible:
        order = index.node_ids()
        lines = ["# ASCII Plan (graph has cycles, snapshot order)"]
    for i, nid in enumerate(order, 1):
        lines.append(f"{i:02d}. {_node_line(index, nid)}")
        for succ in index.successors_of(nid):
            lines.append(f"    └─▶ {succ}")
    return "\n".join(lines)


def ascii_ancestors(index: GraphIndex, node_id: str) -> str:
    """Upstream nodes of ``node_id`` nearest first, with their hop distance."""
    lines: List[str] = [f"# Upstream of {_node_line(index, node_id)}"]
    ancestors = ancestors_of(node_id, index)
    if not ancestors:
        lines.append("(no upstream nodes)")
        return "\n".join(lines)
    hops = nx.single_source_shortest_path_length(index.graph.reverse(copy=False), node_id)
    for i, aid in enumerate(ancestors, 1):
        lines.append(f"{i:02d}. {'  ' * (hops[aid] - 1)}◀─ {_node_line(index, aid)}  (hops={hops[aid]})")
    return "\n".join(lines)
