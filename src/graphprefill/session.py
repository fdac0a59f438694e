from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

from .config import PrefillSettings
from .engine import PrefillEngine
from .ir import GraphSnapshot, SourceGroup
from .logging import get_logger
from .resolver import Resolution
from .transport import GraphTransport

logger = get_logger(__name__)


class PrefillSession:
    """Wires a PrefillEngine to a transport.

    Every write-back is persisted, folded into the session snapshot and
    handed back to the engine, which is what drives downstream re-evaluation.
    """

    def __init__(self, transport: GraphTransport, settings: Optional[PrefillSettings] = None):
        self.transport = transport
        self.settings = settings or PrefillSettings()
        self.snapshot: GraphSnapshot = transport.fetch_graph()
        self.writes: List[Tuple[str, str, Any]] = []
        self.engine = PrefillEngine(
            self.snapshot,
            self.settings.frozen_context(),
            self._on_field_resolved,
            auto_prefill=self.settings.auto_prefill,
            max_passes=self.settings.max_passes,
        )

    def _on_field_resolved(self, node_id: str, field_key: str, value: Any) -> None:
        self.transport.persist_field_value(node_id, field_key, value)
        self.writes.append((node_id, field_key, value))
        self.snapshot = self.snapshot.with_field_value(node_id, field_key, value)
        self.engine.update_snapshot(self.snapshot)

    def refresh(self) -> None:
        """Re-fetch the graph; the fresh snapshot replaces the current one wholesale."""
        self.snapshot = self.transport.fetch_graph()
        self.engine.update_snapshot(self.snapshot)
        logger.info("session.refreshed", nodes=len(self.snapshot.nodes), edges=len(self.snapshot.edges))

    def focus(self, node_id: str) -> Dict[str, Resolution]:
        self.engine.focus(node_id)
        return self.engine.preview(node_id)

    def list_sources(self, node_id: str) -> List[SourceGroup]:
        return self.engine.list_sources(node_id)

    def set_mapping(self, node_id: str, field_key: str, source) -> None:
        self.engine.set_mapping(node_id, field_key, source)

    def clear_mapping(self, node_id: str, field_key: str) -> None:
        self.engine.clear_mapping(node_id, field_key)

    def set_auto_prefill(self, node_id: str, enabled: bool) -> None:
        self.engine.set_auto_prefill(node_id, enabled)
