from __future__ import annotations
from typing import Optional


class PrefillError(Exception):
    """Base class for everything the prefill engine raises."""


class SnapshotFormatError(PrefillError):
    pass


class ConfigError(PrefillError):
    pass


class MalformedGraphError(PrefillError):
    """An edge references a node id that is not in the snapshot.

    Recorded on the index and logged; never raised out of ``GraphIndex.build``.
    """

    def __init__(self, source: str, target: str, missing: Optional[str] = None):
        self.source = source
        self.target = target
        self.missing = missing
        super().__init__(f"Edge {source}->{target} references missing node '{missing}'.")


class UnknownNodeError(PrefillError, KeyError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Unknown node '{node_id}'.")

    def __str__(self) -> str:
        return self.args[0]


class InvalidMappingError(PrefillError, ValueError):
    pass


class UnknownSourceError(PrefillError, LookupError):
    pass


class ConvergenceError(PrefillError, RuntimeError):
    pass
