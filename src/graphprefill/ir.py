from __future__ import annotations
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SnapshotFormatError

GLOBAL_GROUP = "Global Data"
GLOBAL_PREFIX = "Global"


def is_empty(value: Any) -> bool:
    """None, "" and empty lists/dicts all count as "no value" for prefill."""
    if value is None:
        return True
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) == 0
    return False


class FieldMeta(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    type: Union[str, List[str], None] = None


class Form(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    field_schema: Dict[str, FieldMeta] = Field(default_factory=dict)  # key -> meta, ordered


class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    component_id: Optional[str] = None
    field_values: Dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.name or self.id


class Edge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class GraphSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    forms: List[Form] = Field(default_factory=list)

    def node_map(self) -> Dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def form_map(self) -> Dict[str, Form]:
        return {f.id: f for f in self.forms}

    def value_of(self, node_id: str, field_key: str) -> Any:
        node = self.node_map().get(node_id)
        if node is None:
            return None
        return node.field_values.get(field_key)

    def with_field_value(self, node_id: str, field_key: str, value: Any) -> "GraphSnapshot":
        nodes = []
        for n in self.nodes:
            if n.id == node_id:
                n = n.model_copy(update={"field_values": {**n.field_values, field_key: value}})
            nodes.append(n)
        return self.model_copy(update={"nodes": nodes})

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> "GraphSnapshot":
        """Parse the blueprint graph payload served by the transport.

        Nodes carry ``data.{name, component_id, formFields}``, forms carry a
        JSON-schema style ``field_schema.properties``.
        """
        data = data or {}
        try:
            nodes = []
            for raw in data.get("nodes") or []:
                node_data = raw.get("data") or {}
                nodes.append(Node(
                    id=raw["id"],
                    name=node_data.get("name") or "",
                    component_id=node_data.get("component_id"),
                    field_values=dict(node_data.get("formFields") or {}),
                ))
            forms = []
            for raw in data.get("forms") or []:
                props = (raw.get("field_schema") or {}).get("properties") or {}
                forms.append(Form(
                    id=raw["id"],
                    name=raw.get("name") or "",
                    field_schema={k: FieldMeta(**(v or {})) for k, v in props.items()},
                ))
            edges = [Edge(source=e["source"], target=e["target"]) for e in data.get("edges") or []]
            return cls(nodes=nodes, edges=edges, forms=forms)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise SnapshotFormatError(f"Malformed graph payload: {e}") from e

    def to_payload(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {"id": n.id, "data": {"name": n.name, "component_id": n.component_id,
                                      "formFields": dict(n.field_values)}}
                for n in self.nodes
            ],
            "edges": [{"source": e.source, "target": e.target} for e in self.edges],
            "forms": [
                {"id": f.id, "name": f.name,
                 "field_schema": {"type": "object",
                                  "properties": {k: m.model_dump(exclude_none=True)
                                                 for k, m in f.field_schema.items()}}}
                for f in self.forms
            ],
        }


class SourceKind(str, Enum):
    NODE_FIELD = "NODE_FIELD"
    GLOBAL = "GLOBAL"


class NodeFieldRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[SourceKind.NODE_FIELD] = SourceKind.NODE_FIELD
    node_id: str
    field_key: str


class GlobalRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[SourceKind.GLOBAL] = SourceKind.GLOBAL
    key: str


SourceRef = Annotated[Union[NodeFieldRef, GlobalRef], Field(discriminator="kind")]


class SourceOption(BaseModel):
    """A SourceRef plus the labels shown when picking a mapping."""
    model_config = ConfigDict(frozen=True)

    ref: SourceRef
    group_label: str
    field_label: str
    label: str  # e.g. "Form A.email" / "Global.userId"


class SourceGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    node_id: Optional[str] = None  # None for the global group
    options: List[SourceOption] = Field(default_factory=list)


class MappingOrigin(str, Enum):
    MANUAL = "MANUAL"
    AUTO = "AUTO"


class Mapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: SourceRef
    origin: MappingOrigin = MappingOrigin.MANUAL
    label: str = ""
