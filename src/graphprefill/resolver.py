from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .ancestors import ancestors_of, find_upstream_value
from .catalog import node_option
from .index import GraphIndex
from .ir import GlobalRef, MappingOrigin, NodeFieldRef, is_empty
from .logging import get_logger
from .mappings import MappingStore

logger = get_logger(__name__)

RETRACTED_VALUE = ""


class Action(str, Enum):
    UNCHANGED = "UNCHANGED"  # computed value equals the stored one
    APPLY = "APPLY"
    RETRACT = "RETRACT"
    SKIP = "SKIP"            # no mapping and auto-prefill off


@dataclass(frozen=True)
class Resolution:
    node_id: str
    field_key: str
    action: Action
    value: Any = None
    source: Optional[Any] = None  # SourceRef where the value was actually read

    @property
    def changed(self) -> bool:
        return self.action in (Action.APPLY, Action.RETRACT)


class Resolver:
    """Computes the prefill value of a single field.

    Precedence: an explicit mapping, then (when the node has auto-prefill on)
    the nearest non-empty same-named field upstream. A mapping whose source
    went empty or stopped being an ancestor retracts what the engine wrote,
    but never clears a value the engine did not write.
    """

    def __init__(self, index: GraphIndex, global_context: Mapping[str, Any], store: MappingStore):
        self.index = index
        self.global_context = global_context
        self.store = store
        self._ancestors: Dict[str, List[str]] = {}

    def ancestors(self, node_id: str) -> List[str]:
        if node_id not in self._ancestors:
            self._ancestors[node_id] = ancestors_of(node_id, self.index)
        return self._ancestors[node_id]

    def resolve_node(self, node_id: str, dry: bool = False) -> Dict[str, Resolution]:
        return {k: self.resolve(node_id, k, dry) for k in self.index.field_keys_of(node_id)}

    def resolve(self, node_id: str, field_key: str, dry: bool = False) -> Resolution:
        """Resolve one field. With ``dry`` the store is left as it was: stale
        mappings stay put and inferred AUTO mappings are not recorded.
        """
        current = self.index.value_of(node_id, field_key)
        mapping = self.store.get(node_id, field_key)
        had_mapping = mapping is not None

        if mapping is not None:
            src = mapping.source
            if isinstance(src, GlobalRef):
                value = self.global_context.get(src.key)
                if is_empty(value):
                    return self._retract(node_id, field_key, current)
                return self._apply(node_id, field_key, current, value, src)

            if src.node_id in self.ancestors(node_id):
                found = find_upstream_value([src.node_id], src.field_key, self.index, exclude=[node_id])
                if found is None:
                    return self._retract(node_id, field_key, current)
                found_id, value = found
                return self._apply(node_id, field_key, current, value,
                                   NodeFieldRef(node_id=found_id, field_key=src.field_key))

            if not dry:
                self.store.clear(node_id, field_key)
                logger.info("mapping.stale_cleared", node_id=node_id, field_key=field_key,
                            source_node_id=src.node_id)

        if self.store.auto_prefill(node_id):
            found = find_upstream_value(self.index.predecessors_of(node_id), field_key, self.index,
                                        exclude=[node_id])
            if found is not None:
                found_id, value = found
                ref = NodeFieldRef(node_id=found_id, field_key=field_key)
                if not dry:
                    self.store.set(node_id, field_key, ref, origin=MappingOrigin.AUTO,
                                   label=node_option(self.index, found_id, field_key).label)
                    logger.debug("resolver.auto_mapped", node_id=node_id, field_key=field_key,
                                 source_node_id=found_id)
                return self._apply(node_id, field_key, current, value, ref)
        elif not had_mapping:
            return Resolution(node_id, field_key, Action.SKIP, current)

        if had_mapping:
            return self._retract(node_id, field_key, current)
        return Resolution(node_id, field_key, Action.UNCHANGED, current)

    def _apply(self, node_id: str, field_key: str, current: Any, value: Any, source) -> Resolution:
        action = Action.UNCHANGED if value == current else Action.APPLY
        return Resolution(node_id, field_key, action, value, source)

    def _retract(self, node_id: str, field_key: str, current: Any) -> Resolution:
        if (not is_empty(current)
                and self.store.was_written(node_id, field_key)
                and self.store.written(node_id, field_key) == current):
            return Resolution(node_id, field_key, Action.RETRACT, RETRACTED_VALUE)
        return Resolution(node_id, field_key, Action.UNCHANGED, current)
