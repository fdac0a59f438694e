"""Property-based tests for ancestry and resolution invariants.

Properties tested:
1. A node is never its own ancestor, whatever the edge list looks like
2. Ancestors are exactly the nodes that reach the origin (networkx agrees)
3. Resolution is deterministic and converges: a second focus writes nothing
"""
from typing import List, Tuple

import networkx as nx
from hypothesis import given, settings
from hypothesis import strategies as st

from graphprefill.ancestors import ancestors_of
from graphprefill.config import PrefillSettings
from graphprefill.index import GraphIndex
from graphprefill.session import PrefillSession

from graphs import MemoryTransport, build_snapshot

node_ids = st.sampled_from([f"n{i}" for i in range(8)])
edge_lists = st.lists(st.tuples(node_ids, node_ids), max_size=20)
dag_edge_lists = edge_lists.map(lambda es: [(a, b) for a, b in es if a < b])
field_values = st.one_of(st.none(), st.just(""), st.sampled_from(["x", "y", "z"]))


@given(edges=edge_lists, origin=node_ids)
def test_never_own_ancestor(edges: List[Tuple[str, str]], origin: str):
    index = GraphIndex.build(build_snapshot(edges, {origin: {}}))
    result = ancestors_of(origin, index)
    assert origin not in result
    assert len(result) == len(set(result))


@given(edges=edge_lists, origin=node_ids)
def test_ancestors_match_reachability(edges: List[Tuple[str, str]], origin: str):
    index = GraphIndex.build(build_snapshot(edges, {origin: {}}))
    expected = nx.ancestors(index.graph, origin) - {origin}
    assert set(ancestors_of(origin, index)) == expected


@given(edges=edge_lists, origin=node_ids)
def test_direct_predecessors_come_first(edges: List[Tuple[str, str]], origin: str):
    index = GraphIndex.build(build_snapshot(edges, {origin: {}}))
    direct = [p for p in index.predecessors_of(origin) if p != origin]
    result = ancestors_of(origin, index)
    assert result[:len(set(direct))] == list(dict.fromkeys(direct))


@settings(max_examples=50, deadline=None)
@given(edges=dag_edge_lists, target=node_ids,
       values=st.dictionaries(node_ids, st.fixed_dictionaries({"id": field_values, "email": field_values})))
def test_focus_reaches_a_fixed_point(edges, target, values):
    snap = build_snapshot(edges, {target: {}, **values}, fields=("id", "email"))
    session = PrefillSession(MemoryTransport(snap), PrefillSettings(auto_prefill=True))
    session.focus(target)
    first = {k: session.snapshot.value_of(target, k) for k in ("id", "email")}
    writes = len(session.writes)
    session.focus(target)
    assert len(session.writes) == writes
    assert {k: session.snapshot.value_of(target, k) for k in ("id", "email")} == first
