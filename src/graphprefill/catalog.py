from __future__ import annotations
from typing import Any, List, Mapping, Optional

from .ancestors import ancestors_of
from .errors import UnknownSourceError
from .index import GraphIndex
from .ir import (GLOBAL_GROUP, GLOBAL_PREFIX, GlobalRef, NodeFieldRef, SourceGroup,
                 SourceOption)


def node_option(index: GraphIndex, node_id: str, field_key: str) -> SourceOption:
    group = index.node(node_id).label
    return SourceOption(
        ref=NodeFieldRef(node_id=node_id, field_key=field_key),
        group_label=group,
        field_label=field_key,
        label=f"{group}.{field_key}",
    )


def global_option(key: str) -> SourceOption:
    return SourceOption(
        ref=GlobalRef(key=key),
        group_label=GLOBAL_GROUP,
        field_label=key,
        label=f"{GLOBAL_PREFIX}.{key}",
    )


def sources_for(node_id: str, index: GraphIndex, global_context: Mapping[str, Any]) -> List[SourceGroup]:
    """Every place a field of ``node_id`` could be prefilled from.

    One group per ancestor with a form, nearest ancestor first, followed by
    the global context group, which is always last.
    """
    groups: List[SourceGroup] = []
    for aid in ancestors_of(node_id, index):
        if index.form_of(aid) is None:
            continue
        groups.append(SourceGroup(
            label=index.node(aid).label,
            node_id=aid,
            options=[node_option(index, aid, k) for k in index.field_keys_of(aid)],
        ))
    groups.append(SourceGroup(label=GLOBAL_GROUP, options=[global_option(k) for k in global_context]))
    return groups


def find_option(groups: List[SourceGroup], text: str) -> SourceOption:
    """Resolve ``"Form A.email"``, ``"<node id>.email"`` or ``"Global.userId"``."""
    head, sep, tail = text.rpartition(".")
    if not sep or not head or not tail:
        raise UnknownSourceError(f"Source '{text}' must look like '<node>.<field>' or 'Global.<key>'.")
    for group in groups:
        if group.node_id is None:
            matches_group = head in (GLOBAL_PREFIX, GLOBAL_GROUP)
        else:
            matches_group = head in (group.node_id, group.label)
        if not matches_group:
            continue
        for opt in group.options:
            if opt.field_label == tail:
                return opt
    raise UnknownSourceError(f"No source '{text}' is available for this node.")


def option_for_ref(index: GraphIndex, ref) -> Optional[SourceOption]:
    if isinstance(ref, GlobalRef):
        return global_option(ref.key)
    if ref.node_id not in index:
        return None
    return node_option(index, ref.node_id, ref.field_key)
