from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from .errors import SnapshotFormatError
from .ir import GraphSnapshot


class GraphTransport(Protocol):
    def fetch_graph(self) -> GraphSnapshot: ...

    def persist_field_value(self, node_id: str, field_key: str, value: Any) -> None: ...


def load_snapshot(path: Path) -> GraphSnapshot:
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text())  # JSON is valid YAML
    except OSError as e:
        raise SnapshotFormatError(f"Could not read graph file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise SnapshotFormatError(f"Could not parse graph file '{path}': {e}") from e
    if data is not None and not isinstance(data, dict):
        raise SnapshotFormatError(f"Graph file '{path}' must contain a mapping.")
    return GraphSnapshot.from_payload(data)


def save_snapshot(snapshot: GraphSnapshot, path: Path) -> None:
    path = Path(path)
    payload = snapshot.to_payload()
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(payload, indent=2))
    else:
        path.write_text(yaml.safe_dump(payload, sort_keys=False))


class FileGraphTransport:
    """Graph transport backed by a YAML or JSON file in the blueprint payload shape.

    With ``dry_run`` persisted values only live in memory.
    """

    def __init__(self, path: Path, dry_run: bool = False):
        self.path = Path(path)
        self.dry_run = dry_run
        self._snapshot: Optional[GraphSnapshot] = None

    def fetch_graph(self) -> GraphSnapshot:
        if self._snapshot is None or not self.dry_run:
            self._snapshot = load_snapshot(self.path)
        return self._snapshot

    def persist_field_value(self, node_id: str, field_key: str, value: Any) -> None:
        snapshot = self._snapshot if self._snapshot is not None else load_snapshot(self.path)
        self._snapshot = snapshot.with_field_value(node_id, field_key, value)
        if not self.dry_run:
            save_snapshot(self._snapshot, self.path)
