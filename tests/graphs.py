"""Graph payloads and helpers shared by the test modules."""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from graphprefill.ir import GraphSnapshot

FORM_A = "form-47c61d17-62b0-4c42-8ca2-0eff641c9d88"
FORM_B = "form-a4750667-d774-40fb-9b0a-44f8539ff6c4"
FORM_C = "form-7c26f280-7bff-40e3-b9a5-0533136f52c3"
FORM_D = "form-0f58384c-4966-4ce6-9ec2-40b96d61f745"
FORM_E = "form-e15d42df-c7c0-4819-9391-53730e6d47b3"
FORM_F = "form-bad163fd-09bd-4710-ad80-245f31b797d5"

SHARED_FORM = "f_01jk7ap2r3ewf9gx6a9r09gzjv"

GLOBAL_CONTEXT = {
    "userId": "user123",
    "sessionId": "session456",
    "companyName": "Avantos Corp",
}

_PROPERTIES = {
    "id": {"avantos_type": "short-text", "title": "ID", "type": "string"},
    "name": {"avantos_type": "short-text", "title": "Name", "type": "string"},
    "email": {"avantos_type": "short-text", "format": "email", "title": "Email", "type": "string"},
    "notes": {"avantos_type": "multi-line-text", "title": "Notes", "type": "string"},
    "multi_select": {"avantos_type": "multi-select", "type": "array",
                     "items": {"enum": ["foo", "bar", "foobar"], "type": "string"}},
}


def _node(node_id: str, name: str, component_id: str, /, **fields: Any) -> Dict[str, Any]:
    return {"id": node_id, "data": {"name": name, "component_id": component_id, "formFields": fields},
            "position": {"x": 0, "y": 0}}


def blueprint_payload() -> Dict[str, Any]:
    """A->B->D->F and A->C->E->F, shaped like the blueprint graph API response."""
    return {
        "nodes": [
            _node(FORM_A, "Form A", SHARED_FORM, id="user-001", name="John Doe",
                  email="john.doe@example.com", notes="Initial user registration", multi_select=["foo", "bar"]),
            _node(FORM_B, "Form B", "f_01jk7awbhqewgbkbgk8rjm7bv7", id="", name="Jane Smith", email="",
                  notes="Contact information form", multi_select=["foobar"]),
            _node(FORM_C, "Form C", "f_01jk7aygnqewh8gt8549beb1yc", id="user-003", name="Bob Johnson",
                  email="bob.johnson@example.com", notes="Additional processing form", multi_select=[]),
            _node(FORM_D, "Form D", SHARED_FORM, id="user-004", name="Alice Brown",
                  email="alice.brown@example.com", notes="Review and approval form", multi_select=["bar"]),
            _node(FORM_E, "Form E", SHARED_FORM, id="", name="", email="", notes="", multi_select=[]),
            _node(FORM_F, "Form F", SHARED_FORM, id="", name="", email="", notes="", multi_select=[]),
        ],
        "forms": [
            {"id": fid, "name": "test form", "description": "test",
             "field_schema": {"type": "object", "properties": dict(_PROPERTIES),
                              "required": ["id", "name", "email"]}}
            for fid in (SHARED_FORM, "f_01jk7awbhqewgbkbgk8rjm7bv7", "f_01jk7aygnqewh8gt8549beb1yc")
        ],
        "edges": [
            {"source": FORM_A, "target": FORM_B},
            {"source": FORM_A, "target": FORM_C},
            {"source": FORM_B, "target": FORM_D},
            {"source": FORM_C, "target": FORM_E},
            {"source": FORM_D, "target": FORM_F},
            {"source": FORM_E, "target": FORM_F},
        ],
    }


def build_snapshot(edges: Iterable[Tuple[str, str]], values: Optional[Dict[str, Dict[str, Any]]] = None,
                   fields: Iterable[str] = ("id", "name", "email")) -> GraphSnapshot:
    """Small graphs: every node listed in ``values`` or ``edges`` is bound to one shared form."""
    values = dict(values or {})
    edges = list(edges)
    ids: List[str] = list(values)
    for s, t in edges:
        for nid in (s, t):
            if nid not in ids:
                ids.append(nid)
    return GraphSnapshot.from_payload({
        "nodes": [_node(nid, nid, "form", **values.get(nid, {})) for nid in ids],
        "forms": [{"id": "form", "name": "Form",
                   "field_schema": {"properties": {k: {"type": "string"} for k in fields}}}],
        "edges": [{"source": s, "target": t} for s, t in edges],
    })




def relay_chain(depth: int) -> GraphSnapshot:
    """A straight chain n00 -> n01 -> ... where node i has its own form with the single field ``f{i}``."""
    ids = [f"n{i:02d}" for i in range(depth)]
    return GraphSnapshot.from_payload({
        "nodes": [_node(nid, nid, f"relay-{i}") for i, nid in enumerate(ids)],
        "forms": [{"id": f"relay-{i}", "name": f"Relay {i}",
                   "field_schema": {"properties": {f"f{i}": {"type": "string"}}}} for i in range(depth)],
        "edges": [{"source": s, "target": t} for s, t in zip(ids, ids[1:])],
    })


class MemoryTransport:
    def __init__(self, snapshot: GraphSnapshot):
        self.snapshot = snapshot
        self.persisted: List[Tuple[str, str, Any]] = []

    def fetch_graph(self) -> GraphSnapshot:
        return self.snapshot

    def persist_field_value(self, node_id: str, field_key: str, value: Any) -> None:
        self.persisted.append((node_id, field_key, value))
        self.snapshot = self.snapshot.with_field_value(node_id, field_key, value)
