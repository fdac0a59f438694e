from __future__ import annotations
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .catalog import option_for_ref, sources_for
from .errors import ConvergenceError, InvalidMappingError, UnknownNodeError
from .events import FieldChangeBus, diff_snapshots, edges_changed
from .index import GraphIndex
from .ir import GlobalRef, GraphSnapshot, MappingOrigin, SourceGroup
from .logging import get_logger
from .mappings import MappingStore
from .resolver import RETRACTED_VALUE, Action, Resolution, Resolver

logger = get_logger(__name__)

FieldResolvedCallback = Callable[[str, str, Any], None]


class PrefillEngine:
    """Keeps the prefilled fields of watched nodes in step with the graph.

    A node becomes watched when it is focused, gets a mapping or has
    auto-prefill switched on. Watched nodes subscribe to field changes of
    their ancestors; every change, mapping edit or new snapshot queues the
    affected ``(node, field)`` pairs and a pass resolves each pair once.

    Write-backs go to ``on_field_resolved``. The caller persists them and
    hands the folded snapshot back through ``update_snapshot``; a snapshot
    handed back while a pass is running is held (latest wins) and applied
    once the pass is over, so passes never nest.
    """

    def __init__(self, snapshot: GraphSnapshot, global_context: Mapping[str, Any],
                 on_field_resolved: FieldResolvedCallback, *, auto_prefill: bool = False,
                 max_passes: int = 64, store: Optional[MappingStore] = None):
        self.global_context: Mapping[str, Any] = MappingProxyType(dict(global_context))
        self.store = store if store is not None else MappingStore(auto_prefill)
        self.max_passes = max_passes
        self._on_field_resolved = on_field_resolved
        self._bus = FieldChangeBus()
        self._queue: Dict[Tuple[str, str], None] = {}
        self._pending: Optional[GraphSnapshot] = None
        self._draining = False
        self._install(snapshot)

    # public entry points

    def focus(self, node_id: str) -> None:
        self._require(node_id)
        self._watch(node_id)
        self._enqueue_node(node_id)
        self._drain()

    def update_snapshot(self, snapshot: GraphSnapshot) -> None:
        self._pending = snapshot
        if not self._draining:
            self._drain()

    def list_sources(self, node_id: str) -> List[SourceGroup]:
        return sources_for(node_id, self.index, self.global_context)

    def set_mapping(self, node_id: str, field_key: str, source) -> None:
        self._require(node_id)
        if field_key not in self.index.field_keys_of(node_id):
            raise InvalidMappingError(f"Node '{node_id}' has no field '{field_key}' to map.")
        if isinstance(source, GlobalRef):
            if source.key not in self.global_context:
                raise InvalidMappingError(f"Global context has no key '{source.key}'.")
        else:
            if source.node_id not in self.resolver.ancestors(node_id):
                raise InvalidMappingError(
                    f"Node '{source.node_id}' is not upstream of '{node_id}'.")
            if not self.index.has_field(source.node_id, source.field_key):
                raise InvalidMappingError(
                    f"Node '{source.node_id}' has no field '{source.field_key}'.")
        option = option_for_ref(self.index, source)
        self.store.set(node_id, field_key, source, MappingOrigin.MANUAL, option.label if option else "")
        logger.debug("mapping.set", node_id=node_id, field_key=field_key, source=option.label if option else None)
        self._watch(node_id)
        self._queue[(node_id, field_key)] = None
        self._drain()

    def clear_mapping(self, node_id: str, field_key: str) -> None:
        """Drop the mapping, switch auto-prefill off for the node and empty the field."""
        self._require(node_id)
        self.store.clear(node_id, field_key)
        self.store.set_auto_prefill(node_id, False)
        logger.debug("mapping.cleared", node_id=node_id, field_key=field_key)
        self._queue.pop((node_id, field_key), None)
        self._run(lambda: self._write(node_id, field_key, RETRACTED_VALUE, Action.RETRACT))

    def set_auto_prefill(self, node_id: str, enabled: bool) -> None:
        self._require(node_id)
        self.store.set_auto_prefill(node_id, enabled)
        if enabled:
            self._watch(node_id)
            self._enqueue_node(node_id)
            self._drain()

    def preview(self, node_id: str) -> Dict[str, Resolution]:
        """Resolve every field of ``node_id`` without writing back or touching the mapping store."""
        return self.resolver.resolve_node(node_id, dry=True)

    def pass_limit(self) -> int:
        """Passes allowed per drain; never fewer than the longest possible upstream chain."""
        return max(self.max_passes, len(self.index.node_ids()) + 1)

    # internals

    def _install(self, snapshot: GraphSnapshot) -> None:
        self.snapshot = snapshot
        self.index = GraphIndex.build(snapshot)
        self.resolver = Resolver(self.index, self.global_context, self.store)
        for watcher in self._bus.watchers():
            self._bus.subscribe(watcher, self.resolver.ancestors(watcher))

    def _replace(self, snapshot: GraphSnapshot) -> None:
        old = self.snapshot
        changes = diff_snapshots(old, snapshot)
        rewired = edges_changed(old, snapshot)
        self._install(snapshot)
        targets = self._bus.watchers() if rewired else self._bus.publish(changes)
        for watcher in targets:
            self._enqueue_node(watcher)
        if targets:
            logger.debug("engine.reevaluate", watchers=targets, changes=len(changes), rewired=rewired)

    def _require(self, node_id: str) -> None:
        if node_id not in self.index:
            raise UnknownNodeError(node_id)

    def _watch(self, node_id: str) -> None:
        self._bus.subscribe(node_id, self.resolver.ancestors(node_id))

    def _enqueue_node(self, node_id: str) -> None:
        for key in self.index.field_keys_of(node_id):
            self._queue[(node_id, key)] = None

    def _write(self, node_id: str, field_key: str, value: Any, action: Action) -> None:
        if action is Action.RETRACT:
            self.store.forget_write(node_id, field_key)
        else:
            self.store.record_write(node_id, field_key, value)
        logger.debug("engine.write_back", node_id=node_id, field_key=field_key, action=action.value)
        self._on_field_resolved(node_id, field_key, value)

    def _run(self, step: Callable[[], None]) -> None:
        if self._draining:
            step()
            return
        self._draining = True
        try:
            step()
        finally:
            self._draining = False
        self._drain()

    def _drain(self) -> None:
        if self._draining:
            return
        self._draining = True
        try:
            passes = 0
            while True:
                if self._pending is not None:
                    snapshot, self._pending = self._pending, None
                    self._replace(snapshot)
                if not self._queue:
                    break
                passes += 1
                limit = self.pass_limit()
                if passes > limit:
                    stuck = list(self._queue)
                    self._queue.clear()
                    raise ConvergenceError(
                        f"Prefill did not settle after {limit} passes; {len(stuck)} field(s) still pending, "
                        f"e.g. {stuck[:5]}")
                batch = list(self._queue)
                self._queue.clear()
                for node_id, field_key in batch:
                    res = self.resolver.resolve(node_id, field_key)
                    if res.changed:
                        self._write(node_id, field_key, res.value, res.action)
        finally:
            self._draining = False
