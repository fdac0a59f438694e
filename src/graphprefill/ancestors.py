from __future__ import annotations
from collections import deque
from typing import Any, Iterable, List, Optional, Set, Tuple

from .index import GraphIndex
from .ir import is_empty
from .logging import get_logger

logger = get_logger(__name__)


def ancestors_of(node_id: str, index: GraphIndex) -> List[str]:
    """All transitive predecessors of ``node_id``, nearest first.

    Breadth-first over ``predecessors_of``; a direct predecessor is always
    listed before any of its own predecessors. The origin is never part of
    the result, even when a malformed edge list makes it reachable.
    """
    seen: Set[str] = {node_id}
    order: List[str] = []
    queue = deque(index.predecessors_of(node_id))
    origin_reached = False
    while queue:
        current = queue.popleft()
        if current == node_id:
            origin_reached = True
            continue
        if current in seen:
            continue
        seen.add(current)
        order.append(current)
        queue.extend(index.predecessors_of(current))
    if origin_reached:
        logger.warning("ancestors.cycle_through_origin", node_id=node_id)
    return order


def find_upstream_value(start_ids: Iterable[str], field_key: str, index: GraphIndex,
                        exclude: Iterable[str] = ()) -> Optional[Tuple[str, Any]]:
    """First non-empty value of ``field_key`` walking upstream from ``start_ids``.

    Each start node is checked first; when it holds no value for the key its
    predecessors are searched depth-first, then the next start node. Returns
    ``(node_id, value)`` for the node that actually holds the value.
    """
    visited: Set[str] = set(exclude)
    stack = list(reversed(list(start_ids)))
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        if index.has_field(current, field_key):
            value = index.value_of(current, field_key)
            if not is_empty(value):
                return current, value
        stack.extend(reversed(index.predecessors_of(current)))
    return None
