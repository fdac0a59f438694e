from typing import Any, Dict

import pytest

from graphprefill.config import PrefillSettings
from graphprefill.ir import GraphSnapshot
from graphprefill.session import PrefillSession

from graphs import GLOBAL_CONTEXT, MemoryTransport, blueprint_payload


@pytest.fixture
def payload() -> Dict[str, Any]:
    return blueprint_payload()


@pytest.fixture
def snapshot(payload) -> GraphSnapshot:
    return GraphSnapshot.from_payload(payload)


@pytest.fixture
def global_context() -> Dict[str, Any]:
    return dict(GLOBAL_CONTEXT)


@pytest.fixture
def make_session(global_context):
    def _make(snapshot: GraphSnapshot, **settings: Any) -> PrefillSession:
        settings.setdefault("global_context", global_context)
        return PrefillSession(MemoryTransport(snapshot), PrefillSettings(**settings))
    return _make
