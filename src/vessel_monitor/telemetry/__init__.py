"""Tracing, metrics and correlated logging for the service."""

from .logs import CorrelatedLogger, configure_logging, json_formatter
from .metrics import MetricsRecorder
from .providers import Telemetry, build_telemetry, create_propagator, noop_telemetry
from .spans import SpanRecorder

__all__ = [
    "CorrelatedLogger",
    "json_formatter",
    "configure_logging",
    "MetricsRecorder",
    "SpanRecorder",
    "Telemetry",
    "build_telemetry",
    "create_propagator",
    "noop_telemetry",
]
