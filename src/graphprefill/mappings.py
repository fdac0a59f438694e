from __future__ import annotations
from typing import Any, Dict, Optional, Tuple

from .ir import Mapping, MappingOrigin

MappingTable = Dict[str, Dict[str, Mapping]]


class MappingStore:
    """Per-session prefill state: mappings, auto-prefill toggles and the
    values the engine itself wrote (so retraction never clobbers user data).
    """

    def __init__(self, auto_prefill_default: bool = False):
        self.auto_prefill_default = auto_prefill_default
        self._table: MappingTable = {}
        self._auto: Dict[str, bool] = {}
        self._written: Dict[Tuple[str, str], Any] = {}

    def get(self, node_id: str, field_key: str) -> Optional[Mapping]:
        return self._table.get(node_id, {}).get(field_key)

    def set(self, node_id: str, field_key: str, source, origin: MappingOrigin = MappingOrigin.MANUAL,
            label: str = "") -> Mapping:
        mapping = Mapping(source=source, origin=origin, label=label)
        self._table.setdefault(node_id, {})[field_key] = mapping
        return mapping

    def clear(self, node_id: str, field_key: str) -> Optional[Mapping]:
        node_mappings = self._table.get(node_id)
        if not node_mappings:
            return None
        removed = node_mappings.pop(field_key, None)
        if not node_mappings:
            del self._table[node_id]
        return removed

    def mappings_for(self, node_id: str) -> Dict[str, Mapping]:
        return dict(self._table.get(node_id, {}))

    def table(self) -> MappingTable:
        return {nid: dict(fields) for nid, fields in self._table.items()}

    # auto-prefill toggles

    def set_auto_prefill(self, node_id: str, enabled: bool) -> None:
        self._auto[node_id] = enabled

    def auto_prefill(self, node_id: str) -> bool:
        return self._auto.get(node_id, self.auto_prefill_default)

    # provenance of engine writes

    def record_write(self, node_id: str, field_key: str, value: Any) -> None:
        self._written[(node_id, field_key)] = value

    def written(self, node_id: str, field_key: str) -> Any:
        return self._written.get((node_id, field_key))

    def was_written(self, node_id: str, field_key: str) -> bool:
        return (node_id, field_key) in self._written

    def forget_write(self, node_id: str, field_key: str) -> None:
        self._written.pop((node_id, field_key), None)
