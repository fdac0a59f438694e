from __future__ import annotations
from typing import Dict, List, Optional, Tuple

import networkx as nx

from .errors import MalformedGraphError, UnknownNodeError
from .ir import Form, GraphSnapshot, Node
from .logging import get_logger

logger = get_logger(__name__)


class GraphIndex:
    """Lookup structures over one GraphSnapshot.

    Built once per snapshot. Dangling edges are dropped and kept on
    ``problems``; cycles are tolerated and only reported.
    """

    def __init__(self, snapshot: GraphSnapshot, graph: nx.DiGraph,
                 forms_by_component: Dict[str, Form], problems: List[MalformedGraphError]):
        self.snapshot = snapshot
        self.graph = graph
        self.forms_by_component = forms_by_component
        self.problems = problems
        self._nodes = snapshot.node_map()

    @classmethod
    def build(cls, snapshot: GraphSnapshot) -> "GraphIndex":
        g = nx.DiGraph()
        g.add_nodes_from(n.id for n in snapshot.nodes)
        problems: List[MalformedGraphError] = []
        for e in snapshot.edges:
            missing = next((nid for nid in (e.source, e.target) if nid not in g), None)
            if missing is not None:
                err = MalformedGraphError(e.source, e.target, missing)
                problems.append(err)
                logger.warning("graph.edge_dropped", source=e.source, target=e.target, missing=missing)
                continue
            g.add_edge(e.source, e.target)

        index = cls(snapshot, g, snapshot.form_map(), problems)
        for n in snapshot.nodes:
            if n.component_id and n.component_id not in index.forms_by_component:
                logger.info("graph.form_missing", node_id=n.id, component_id=n.component_id)
        for cycle in index.cycles():
            logger.warning("graph.cycle_detected", nodes=cycle)
        return index

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def predecessors_of(self, node_id: str) -> List[str]:
        if node_id not in self.graph:
            return []
        return list(self.graph.predecessors(node_id))

    def successors_of(self, node_id: str) -> List[str]:
        if node_id not in self.graph:
            return []
        return list(self.graph.successors(node_id))

    def form_of(self, node_id: str) -> Optional[Form]:
        node = self._nodes.get(node_id)
        if node is None or not node.component_id:
            return None
        return self.forms_by_component.get(node.component_id)

    def field_keys_of(self, node_id: str) -> List[str]:
        form = self.form_of(node_id)
        return list(form.field_schema) if form else []

    def has_field(self, node_id: str, field_key: str) -> bool:
        form = self.form_of(node_id)
        if form is not None and field_key in form.field_schema:
            return True
        node = self._nodes.get(node_id)
        return node is not None and field_key in node.field_values

    def value_of(self, node_id: str, field_key: str):
        node = self._nodes.get(node_id)
        return node.field_values.get(field_key) if node else None

    def cycles(self) -> List[List[str]]:
        if nx.is_directed_acyclic_graph(self.graph):
            return []
        return [list(c) for c in nx.simple_cycles(self.graph)]

    def report(self) -> Tuple[bool, List[str]]:
        """Health check of the snapshot as OK:/ERR: lines."""
        messages: List[str] = []
        ok = True

        if len(self._nodes) != len(self.snapshot.nodes):
            ok = False
            messages.append("ERR: Duplicate node IDs detected.")
        else:
            messages.append("OK: Node IDs are unique.")

        for p in self.problems:
            ok = False
            messages.append(f"ERR: {p}")
        if not self.problems:
            messages.append("OK: All edges reference existing nodes.")

        unbound = [n.id for n in self.snapshot.nodes if n.component_id and self.form_of(n.id) is None]
        for nid in unbound:
            ok = False
            messages.append(f"ERR: Node {nid} is bound to missing form '{self._nodes[nid].component_id}'.")
        if not unbound:
            messages.append("OK: Every bound node has a form.")

        cycles = self.cycles()
        for c in cycles:
            ok = False
            messages.append("ERR: Cycle detected: " + " -> ".join(c + c[:1]))
        if not cycles:
            messages.append("OK: Graph is acyclic.")

        return ok, messages
