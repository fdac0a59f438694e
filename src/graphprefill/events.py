from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set

from .ir import GraphSnapshot


@dataclass(frozen=True)
class FieldChange:
    node_id: str
    field_key: str
    old: Any
    new: Any


def diff_snapshots(old: GraphSnapshot, new: GraphSnapshot) -> List[FieldChange]:
    """Field values that differ between two snapshots, in new-snapshot node order."""
    old_nodes = old.node_map()
    changes: List[FieldChange] = []
    for node in new.nodes:
        before = old_nodes[node.id].field_values if node.id in old_nodes else {}
        for key in list(node.field_values) + [k for k in before if k not in node.field_values]:
            a, b = before.get(key), node.field_values.get(key)
            if a != b:
                changes.append(FieldChange(node.id, key, a, b))
    return changes


def edges_changed(old: GraphSnapshot, new: GraphSnapshot) -> bool:
    if {n.id for n in old.nodes} != {n.id for n in new.nodes}:
        return True
    if {(n.id, n.component_id) for n in old.nodes} != {(n.id, n.component_id) for n in new.nodes}:
        return True
    return {(e.source, e.target) for e in old.edges} != {(e.source, e.target) for e in new.edges}


class FieldChangeBus:
    """Routes field-change events to the nodes watching them.

    A watcher subscribes to its ancestor set only, so a change re-evaluates
    just the nodes downstream of it.
    """

    def __init__(self):
        self._watching: Dict[str, Set[str]] = {}   # watcher -> watched node ids
        self._watchers: Dict[str, Dict[str, None]] = {}  # watched -> ordered watchers

    def subscribe(self, watcher: str, watched: Iterable[str]) -> None:
        self.unsubscribe(watcher)
        ids = set(watched)
        self._watching[watcher] = ids
        for nid in ids:
            self._watchers.setdefault(nid, {})[watcher] = None

    def unsubscribe(self, watcher: str) -> None:
        for nid in self._watching.pop(watcher, ()):
            subs = self._watchers.get(nid)
            if subs is not None:
                subs.pop(watcher, None)
                if not subs:
                    del self._watchers[nid]

    def watchers(self) -> List[str]:
        return list(self._watching)

    def publish(self, changes: Iterable[FieldChange]) -> List[str]:
        """Watchers affected by ``changes``, first-affected first, no duplicates."""
        affected: Dict[str, None] = {}
        for change in changes:
            for w in self._watchers.get(change.node_id, {}):
                affected[w] = None
        return list(affected)
