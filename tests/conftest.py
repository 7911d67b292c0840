"""Shared fixtures: in-memory telemetry and a non-suspending sleep."""

import logging
from typing import Any

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from vessel_monitor.config import Settings
from vessel_monitor.exporters import ExporterSet
from vessel_monitor.telemetry import MetricsRecorder, SpanRecorder, Telemetry, build_telemetry

TRACEPARENT_TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
TRACEPARENT_SPAN_ID = "00f067aa0ba902b7"
TRACEPARENT = f"00-{TRACEPARENT_TRACE_ID}-{TRACEPARENT_SPAN_ID}-01"


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    return InMemoryMetricReader()


@pytest.fixture
def telemetry(span_exporter: InMemorySpanExporter, metric_reader: InMemoryMetricReader):
    """Telemetry exporting spans synchronously to memory; nothing leaves the process."""
    tel = build_telemetry(
        Settings(exporter="none"),
        exporters=ExporterSet(spans=span_exporter),
        metric_readers=[metric_reader],
        batch=False,
    )
    yield tel
    tel.shutdown()


@pytest.fixture
def spans(telemetry: Telemetry) -> SpanRecorder:
    return SpanRecorder(telemetry.tracer)


@pytest.fixture
def metrics(telemetry: Telemetry) -> MetricsRecorder:
    return MetricsRecorder(telemetry.meter)


@pytest.fixture
def logger() -> logging.Logger:
    """Propagating logger so caplog sees service records."""
    log = logging.getLogger("tests.vessel_monitor")
    log.setLevel(logging.DEBUG)
    return log


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays and returns at once."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


def metric_points(reader: InMemoryMetricReader, name: str) -> list[Any]:
    """Data points of one metric collected so far (empty if never recorded)."""
    data = reader.get_metrics_data()
    if data is None:
        return []
    points: list[Any] = []
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == name:
                    points.extend(metric.data.data_points)
    return points


def spans_by_name(exporter: InMemorySpanExporter) -> dict[str, Any]:
    return {span.name: span for span in exporter.get_finished_spans()}
