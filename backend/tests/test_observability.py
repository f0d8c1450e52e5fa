"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
from uuid import uuid4

from mentorme.observability import client as client_module


class _DummyTrace:
    def __init__(self, name, metadata=None):
        self.name = name
        self.metadata = metadata or {}
        self.ended = False

    def update(self, metadata=None, **kwargs):
        if metadata:
            self.metadata.update(metadata)

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self):
        self.traces = []
        self.flushed = False

    def trace(self, name, metadata=None, **kwargs):
        trace = _DummyTrace(name, metadata)
        self.traces.append(trace)
        return trace

    def flush(self):
        self.flushed = True


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import mentorme.core.config as core_config
    import mentorme.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_routes_trace_with_request_context(client, monkeypatch) -> None:
    test_client, _ = client
    dummy = _DummyOpik()
    monkeypatch.setattr(client_module, "_client", dummy)
    user_id = uuid4()

    resp = test_client.post(
        "/goals",
        json={"user_id": str(user_id), "title": "Ship it"},
        headers={"X-Request-Id": "req-goal-1"},
    )

    assert resp.status_code == 201
    assert resp.headers["X-Request-Id"] == "req-goal-1"
    names = [trace.name for trace in dummy.traces]
    assert "goal.create" in names
    assert "metric:goal.create.success" in names
    span = next(trace for trace in dummy.traces if trace.name == "goal.create")
    assert span.metadata["request_id"] == "req-goal-1"
    assert span.metadata["user_id"] == str(user_id)
    assert span.ended is True


def test_shutdown_flushes_client(monkeypatch) -> None:
    dummy = _DummyOpik()
    monkeypatch.setattr(client_module, "_client", dummy)

    client_module.shutdown_opik()

    assert dummy.flushed is True
    assert client_module._client is None
