"""
OTLP exporters for traces, metrics, and logs.

Factory functions for OTLP exporters over gRPC (the collector default, port
4317) or HTTP/protobuf (port 4318). Endpoints may be given with or without a
scheme; gRPC connections to the in-cluster collector are plaintext.
"""

from typing import Any

from ..config import ConfigError


def _grpc_target(endpoint: str) -> str:
    return endpoint.replace("http://", "").replace("https://", "")


def _http_url(endpoint: str, signal_path: str) -> str:
    url = endpoint if "://" in endpoint else f"http://{endpoint}"
    url = url.rstrip("/")
    if not url.endswith(signal_path):
        url = f"{url}{signal_path}"
    return url


def create_otlp_trace_exporter(
    endpoint: str,
    protocol: str = "grpc",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Create an OTLP trace exporter.

    Args:
        endpoint: Collector address (host:port or URL)
        protocol: "grpc" or "http"
        headers: Optional headers to include
        **kwargs: Additional exporter configuration

    Returns:
        Configured SpanExporter
    """
    try:
        if protocol == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            return OTLPSpanExporter(
                endpoint=_grpc_target(endpoint),
                insecure=not endpoint.startswith("https://"),
                headers=headers,
                **kwargs,
            )
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as HTTPSpanExporter,
        )
    except ImportError as e:
        raise ConfigError(f"OTLP {protocol} trace exporter is not installed") from e

    return HTTPSpanExporter(
        endpoint=_http_url(endpoint, "/v1/traces"),
        headers=headers,
        **kwargs,
    )


def create_otlp_metric_exporter(
    endpoint: str,
    protocol: str = "grpc",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Create an OTLP metric exporter.

    Args:
        endpoint: Collector address (host:port or URL)
        protocol: "grpc" or "http"
        headers: Optional headers to include
        **kwargs: Additional exporter configuration

    Returns:
        Configured MetricExporter
    """
    try:
        if protocol == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            return OTLPMetricExporter(
                endpoint=_grpc_target(endpoint),
                insecure=not endpoint.startswith("https://"),
                headers=headers,
                **kwargs,
            )
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
            OTLPMetricExporter as HTTPMetricExporter,
        )
    except ImportError as e:
        raise ConfigError(f"OTLP {protocol} metric exporter is not installed") from e

    return HTTPMetricExporter(
        endpoint=_http_url(endpoint, "/v1/metrics"),
        headers=headers,
        **kwargs,
    )


def create_otlp_log_exporter(
    endpoint: str,
    protocol: str = "grpc",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Create an OTLP log exporter.

    Args:
        endpoint: Collector address (host:port or URL)
        protocol: "grpc" or "http"
        headers: Optional headers to include
        **kwargs: Additional exporter configuration

    Returns:
        Configured LogRecordExporter
    """
    try:
        if protocol == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter

            return OTLPLogExporter(
                endpoint=_grpc_target(endpoint),
                insecure=not endpoint.startswith("https://"),
                headers=headers,
                **kwargs,
            )
        from opentelemetry.exporter.otlp.proto.http._log_exporter import (
            OTLPLogExporter as HTTPLogExporter,
        )
    except ImportError as e:
        raise ConfigError(f"OTLP {protocol} log exporter is not installed") from e

    return HTTPLogExporter(
        endpoint=_http_url(endpoint, "/v1/logs"),
        headers=headers,
        **kwargs,
    )
