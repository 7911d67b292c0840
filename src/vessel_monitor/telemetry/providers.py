"""
Explicitly constructed OpenTelemetry providers.

Nothing here touches the global tracer/meter/logger providers or the global
propagator: build_telemetry() returns a Telemetry bundle that the application
passes to whatever needs it, and that the process shuts down on exit.
"""

import logging
from dataclasses import dataclass, field

from opentelemetry import metrics, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from .. import __version__
from ..config import Settings
from ..exporters import ExporterSet, create_exporters

INSTRUMENTATION_NAME = "vessel-monitor"

logger = logging.getLogger(__name__)


def create_propagator() -> TextMapPropagator:
    """W3C trace-context plus baggage, the pair the collector and callers speak."""
    return CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            "service.name": settings.service_name,
            "service.version": settings.service_version,
            "deployment.environment": settings.environment,
        }
    )


@dataclass
class Telemetry:
    """Tracer, meter and propagator for the service, plus the providers behind them."""

    tracer: trace.Tracer
    meter: metrics.Meter
    propagator: TextMapPropagator = field(default_factory=create_propagator)
    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None
    logger_provider: LoggerProvider | None = None

    def shutdown(self) -> None:
        """Flush and stop every provider; failures are logged, never raised."""
        for name, provider in (
            ("tracer provider", self.tracer_provider),
            ("meter provider", self.meter_provider),
            ("logger provider", self.logger_provider),
        ):
            if provider is None:
                continue
            try:
                provider.shutdown()
            except Exception:
                logger.error("failed to shutdown %s", name, exc_info=True)


def build_telemetry(
    settings: Settings,
    exporters: ExporterSet | None = None,
    metric_readers: list[MetricReader] | None = None,
    batch: bool = True,
) -> Telemetry:
    """
    Build providers for the configured exporters.

    :param settings: Service settings (resource attributes, exporter choice, intervals).
    :param exporters: Exporters to use instead of the ones settings.exporter selects.
    :param metric_readers: Extra readers (e.g. InMemoryMetricReader in tests).
    :param batch: Batch span export (production); False exports each span synchronously.
    """
    if exporters is None:
        exporters = create_exporters(settings)
    resource = build_resource(settings)

    tracer_provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)
    if exporters.spans is not None:
        processor = BatchSpanProcessor if batch else SimpleSpanProcessor
        tracer_provider.add_span_processor(processor(exporters.spans))

    readers: list[MetricReader] = list(metric_readers or [])
    if exporters.metrics is not None:
        readers.append(
            PeriodicExportingMetricReader(
                exporters.metrics,
                export_interval_millis=settings.metric_export_interval_ms,
            )
        )
    meter_provider = MeterProvider(resource=resource, metric_readers=readers)

    logger_provider = None
    if exporters.logs is not None:
        logger_provider = LoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(exporters.logs))

    return Telemetry(
        tracer=tracer_provider.get_tracer(INSTRUMENTATION_NAME, __version__),
        meter=meter_provider.get_meter(INSTRUMENTATION_NAME, __version__),
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        logger_provider=logger_provider,
    )


def noop_telemetry() -> Telemetry:
    """Telemetry that records nothing; request handling must behave identically."""
    return Telemetry(
        tracer=trace.NoOpTracer(),
        meter=metrics.NoOpMeter(INSTRUMENTATION_NAME),
    )
