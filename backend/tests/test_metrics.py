"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict

import pytest

from mentorme.observability import metrics
from mentorme.observability import tracing


class _DummyTrace:
    def __init__(self, metadata: Dict[str, Any]):
        self.metadata = metadata
        self.ended = False
        self.updates: list[Dict[str, Any]] = []

    def update(self, **kwargs) -> None:
        self.updates.append(kwargs)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(metadata or {})
        self.traces.append(trace)
        return trace


def test_log_metric_records_value_and_metadata(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(metrics, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("demo_metric", 42, metadata={"foo": "bar"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].metadata["value"] == 42
    assert dummy_client.traces[0].metadata["foo"] == "bar"


def test_log_metric_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(metrics, "get_opik_client", lambda: None)

    metrics.log_metric("demo_metric", 1)


def test_log_latency_reports_milliseconds(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(metrics, "get_opik_client", lambda: dummy_client)

    latency = metrics.log_latency("demo", perf_counter())

    assert latency >= 0
    assert dummy_client.traces[0].metadata["value"] == latency


def test_trace_ends_and_records_errors(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    with pytest.raises(ValueError):
        with tracing.trace("demo", metadata={"a": 1}, user_id="u1", request_id="r1") as span:
            tracing.annotate(span, step="before")
            raise ValueError("boom")

    span = dummy_client.traces[0]
    assert span.metadata == {"a": 1, "user_id": "u1", "request_id": "r1"}
    assert span.updates[0] == {"metadata": {"step": "before"}}
    assert span.updates[1] == {"error_info": {"exception_type": "ValueError", "message": "boom"}}
    assert span.ended is True


def test_trace_yields_none_when_disabled(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with tracing.trace("demo") as span:
        tracing.annotate(span, ignored=True)
        assert span is None
