"""
Built-in defaults, aligned with the edge deployment of the vessel monitor.

The collector address follows the OpenTelemetry convention
(OTEL_EXPORTER_OTLP_ENDPOINT); everything else falls back to the values the
service ships with in the cluster.
"""

from collections.abc import Mapping

DEFAULT_SERVICE_NAME = "edge-demo-app"
DEFAULT_SERVICE_VERSION = "1.0.0"
DEFAULT_ENVIRONMENT = "edge"

DEFAULT_OTLP_ENDPOINT = "otel-collector.observability.svc.cluster.local:4317"
DEFAULT_OTLP_PROTOCOL = "grpc"
DEFAULT_EXPORTER = "otlp"
DEFAULT_METRIC_EXPORT_INTERVAL_MS = 10_000

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_REQUEST_TIMEOUT_S = 15.0
DEFAULT_SHUTDOWN_TIMEOUT_S = 30.0

DEFAULT_LOG_LEVEL = "INFO"
# Container log path; the file sink is off unless a path is configured.
CONTAINER_LOG_FILE = "/var/log/app/app.log"

DEFAULT_SELF_TRAFFIC_INTERVAL_MS = 100

EXPORTER_CHOICES = ("otlp", "console", "file", "none")
PROTOCOL_CHOICES = ("grpc", "http")


def get_otlp_endpoint(environ: Mapping[str, str]) -> str:
    """Collector address from OTEL_EXPORTER_OTLP_ENDPOINT, or the in-cluster default."""
    return environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip() or DEFAULT_OTLP_ENDPOINT


def get_otlp_protocol(environ: Mapping[str, str]) -> str:
    """OTLP transport from OTEL_EXPORTER_OTLP_PROTOCOL (grpc | http/protobuf), default grpc."""
    raw = environ.get("OTEL_EXPORTER_OTLP_PROTOCOL", "").strip().lower()
    if raw.startswith("http"):
        return "http"
    return raw or DEFAULT_OTLP_PROTOCOL
