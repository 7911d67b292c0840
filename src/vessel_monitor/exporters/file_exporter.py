"""
File-based exporters for offline inspection of the service's telemetry.

Each exporter appends one JSON object per line (JSON Lines), so a run can be
grepped or loaded into a notebook without a collector.
"""

import json
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk.metrics.export import MetricExporter, MetricExportResult, MetricsData
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from opentelemetry.trace import format_span_id, format_trace_id


class _JsonLinesFile:
    """Append-only JSON Lines writer shared by the file exporters."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        if not append and self.output_path.exists():
            self.output_path.unlink()
        self._lock = threading.Lock()

    def write(self, rows: Iterable[dict[str, Any]]) -> None:
        lines = [json.dumps(row, default=str) + "\n" for row in rows]
        with self._lock, open(self.output_path, "a", encoding="utf-8") as f:
            f.writelines(lines)


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    """Flatten a finished span to plain JSON-compatible values."""
    ctx = span.context
    return {
        "name": span.name,
        "trace_id": format_trace_id(ctx.trace_id) if ctx else None,
        "span_id": format_span_id(ctx.span_id) if ctx else None,
        "parent_span_id": format_span_id(span.parent.span_id) if span.parent else None,
        "kind": span.kind.name if span.kind else "INTERNAL",
        "start_time": span.start_time,
        "end_time": span.end_time,
        "status": {
            "status_code": span.status.status_code.name,
            "description": span.status.description,
        },
        "attributes": dict(span.attributes) if span.attributes else {},
        "events": [event.name for event in span.events],
    }


class FileSpanExporter(SpanExporter):
    """Export spans to a JSON Lines file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self._file = _JsonLinesFile(output_path, append)

    @property
    def output_path(self) -> Path:
        return self._file.output_path

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            self._file.write(span_to_dict(span) for span in spans)
        except (OSError, TypeError, ValueError):
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


def _point_to_dict(point: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "attributes": dict(point.attributes) if point.attributes else {},
        "time": getattr(point, "time_unix_nano", None),
    }
    for key in ("value", "count", "sum", "min", "max"):
        if hasattr(point, key):
            row[key] = getattr(point, key)
    return row


def metrics_to_dicts(metrics_data: MetricsData) -> list[dict[str, Any]]:
    """One row per metric with its data points."""
    rows: list[dict[str, Any]] = []
    for resource_metrics in metrics_data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                rows.append(
                    {
                        "name": metric.name,
                        "unit": metric.unit,
                        "description": metric.description,
                        "data_points": [_point_to_dict(p) for p in metric.data.data_points],
                    }
                )
    return rows


class FileMetricExporter(MetricExporter):
    """Export metrics to a JSON Lines file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        super().__init__()
        self._file = _JsonLinesFile(output_path, append)

    @property
    def output_path(self) -> Path:
        return self._file.output_path

    def export(
        self,
        metrics_data: MetricsData,
        timeout_millis: float = 10000,
        **kwargs,
    ) -> MetricExportResult:
        try:
            self._file.write(metrics_to_dicts(metrics_data))
        except (OSError, TypeError, ValueError):
            return MetricExportResult.FAILURE
        return MetricExportResult.SUCCESS

    def shutdown(self, timeout_millis: float = 30000, **kwargs) -> None:
        pass

    def force_flush(self, timeout_millis: float = 10000) -> bool:
        return True
