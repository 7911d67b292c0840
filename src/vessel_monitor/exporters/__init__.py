"""Telemetry exporters for the supported backends."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import Settings
from .file_exporter import FileMetricExporter, FileSpanExporter
from .otlp_exporter import (
    create_otlp_log_exporter,
    create_otlp_metric_exporter,
    create_otlp_trace_exporter,
)


@dataclass
class ExporterSet:
    """One exporter per signal; None disables that signal's export."""

    spans: Any = None
    metrics: Any = None
    logs: Any = None


def create_console_exporters() -> ExporterSet:
    """Print telemetry to stdout for quick verification."""
    from opentelemetry.sdk._logs.export import ConsoleLogRecordExporter
    from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    return ExporterSet(ConsoleSpanExporter(), ConsoleMetricExporter(), ConsoleLogRecordExporter())


def create_exporters(settings: Settings) -> ExporterSet:
    """Build exporters for settings.exporter (otlp | console | file | none)."""
    if settings.exporter == "otlp":
        return ExporterSet(
            spans=create_otlp_trace_exporter(settings.otlp_endpoint, settings.otlp_protocol),
            metrics=create_otlp_metric_exporter(settings.otlp_endpoint, settings.otlp_protocol),
            logs=create_otlp_log_exporter(settings.otlp_endpoint, settings.otlp_protocol),
        )
    if settings.exporter == "console":
        return create_console_exporters()
    if settings.exporter == "file":
        out = Path(settings.output_dir)
        # Logs go to the JSON log sinks; no log file exporter.
        return ExporterSet(
            spans=FileSpanExporter(out / "traces.jsonl"),
            metrics=FileMetricExporter(out / "metrics.jsonl"),
        )
    return ExporterSet()


__all__ = [
    "ExporterSet",
    "create_exporters",
    "create_console_exporters",
    "create_otlp_trace_exporter",
    "create_otlp_metric_exporter",
    "create_otlp_log_exporter",
    "FileSpanExporter",
    "FileMetricExporter",
]
