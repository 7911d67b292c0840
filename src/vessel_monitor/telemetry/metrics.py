"""
Request and domain metrics.

Instruments are created once from an injected Meter; recording never raises,
whatever the state of the metrics backend.
"""

import logging

from opentelemetry.metrics import Meter

from .guard import backend_guard

logger = logging.getLogger(__name__)

REQUEST_COUNT = "http.server.request.count"
REQUEST_DURATION = "http.server.request.duration"
DIAGNOSTICS_COUNT = "vessel.diagnostics.count"
SENSOR_FAILURE_COUNT = "vessel.sensor.failure.count"


def status_class(status_code: int) -> str:
    """Bucket a status code as 2xx, 4xx, 5xx, ..."""
    return f"{status_code // 100}xx"


class MetricsRecorder:
    """Record request and vessel-domain metrics with consistent labels."""

    def __init__(self, meter: Meter):
        self.request_count = meter.create_counter(
            REQUEST_COUNT,
            description="Total number of HTTP requests",
            unit="{request}",
        )
        self.request_duration = meter.create_histogram(
            REQUEST_DURATION,
            description="HTTP request duration",
            unit="ms",
        )
        self.diagnostics_count = meter.create_counter(
            DIAGNOSTICS_COUNT,
            description="Total number of diagnostic runs",
            unit="{diagnostic}",
        )
        self.sensor_failure_count = meter.create_counter(
            SENSOR_FAILURE_COUNT,
            description="Simulated sensor communication failures",
            unit="{failure}",
        )

    def record_request(
        self, method: str, route: str, status_code: int, duration_ms: float
    ) -> None:
        """One count increment and one duration observation per finished request."""
        attrs = {
            "http.method": method,
            "http.route": route,
            "http.status_code": status_code,
            "http.status_class": status_class(status_code),
        }
        with backend_guard(logger, "request count"):
            self.request_count.add(1, attributes=attrs)
        with backend_guard(logger, "request duration"):
            self.request_duration.record(duration_ms, attributes=attrs)

    def record_diagnostic(self, complex_analysis: bool, result: str = "completed") -> None:
        with backend_guard(logger, "diagnostics count"):
            self.diagnostics_count.add(
                1, attributes={"result": result, "complex_analysis": complex_analysis}
            )

    def record_sensor_failure(self, error_type: str) -> None:
        with backend_guard(logger, "sensor failure count"):
            self.sensor_failure_count.add(1, attributes={"error.type": error_type})
