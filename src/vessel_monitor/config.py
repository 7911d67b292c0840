"""
Configuration for the vessel monitor service.

Settings are resolved in this order (later wins):
1. built-in defaults (see defaults.py)
2. an optional YAML file (--config or VESSEL_MONITOR_CONFIG)
3. environment variables
4. CLI flags (applied by the caller via Settings.override)

Example YAML:

    server:
      port: 8080
      request_timeout_s: 15
    telemetry:
      exporter: otlp
      endpoint: localhost:4317
    logging:
      level: INFO
      file: /var/log/app/app.log
    sampling:
      diagnostics:
        slow_probability: 0.15
      alerts:
        error_probability: 0.2

Any invalid value raises ConfigError; the CLI turns it into a non-zero exit
before the server binds its port.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from . import defaults

CONFIG_ENV_VAR = "VESSEL_MONITOR_CONFIG"


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or fails validation."""


@dataclass(frozen=True)
class Settings:
    """Resolved service settings."""

    service_name: str = defaults.DEFAULT_SERVICE_NAME
    service_version: str = defaults.DEFAULT_SERVICE_VERSION
    environment: str = defaults.DEFAULT_ENVIRONMENT

    host: str = defaults.DEFAULT_HOST
    port: int = defaults.DEFAULT_PORT
    request_timeout_s: float = defaults.DEFAULT_REQUEST_TIMEOUT_S
    shutdown_timeout_s: float = defaults.DEFAULT_SHUTDOWN_TIMEOUT_S

    exporter: str = defaults.DEFAULT_EXPORTER
    otlp_endpoint: str = defaults.DEFAULT_OTLP_ENDPOINT
    otlp_protocol: str = defaults.DEFAULT_OTLP_PROTOCOL
    output_dir: str = "telemetry-out"
    metric_export_interval_ms: int = defaults.DEFAULT_METRIC_EXPORT_INTERVAL_MS

    log_level: str = defaults.DEFAULT_LOG_LEVEL
    log_file: str | None = None

    seed: int | None = None
    self_traffic: bool = False
    self_traffic_interval_ms: int = defaults.DEFAULT_SELF_TRAFFIC_INTERVAL_MS

    # Per-category overrides for the outcome sampler (see simulation.outcomes).
    sampling: dict[str, dict[str, Any]] = field(default_factory=dict)

    def override(self, **changes: Any) -> "Settings":
        """Return a validated copy with the non-None changes applied (CLI flags)."""
        applied = {k: v for k, v in changes.items() if v is not None}
        return validate(replace(self, **applied))


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; missing file -> {}, unreadable or non-mapping -> ConfigError."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return data


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    block = data.get(name) or {}
    if not isinstance(block, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return block


def _from_yaml(data: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten the sectioned YAML layout into Settings field names."""
    server = _section(data, "server")
    telemetry = _section(data, "telemetry")
    logging_cfg = _section(data, "logging")
    traffic = _section(data, "self_traffic")
    sampling = _section(data, "sampling")

    values: dict[str, Any] = {
        "service_name": telemetry.get("service_name"),
        "service_version": telemetry.get("service_version"),
        "environment": telemetry.get("environment"),
        "exporter": telemetry.get("exporter"),
        "otlp_endpoint": telemetry.get("endpoint"),
        "otlp_protocol": telemetry.get("protocol"),
        "output_dir": telemetry.get("output_dir"),
        "metric_export_interval_ms": telemetry.get("metric_export_interval_ms"),
        "host": server.get("host"),
        "port": server.get("port"),
        "request_timeout_s": server.get("request_timeout_s"),
        "shutdown_timeout_s": server.get("shutdown_timeout_s"),
        "seed": data.get("seed"),
        "log_level": logging_cfg.get("level"),
        "log_file": logging_cfg.get("file"),
        "self_traffic": traffic.get("enabled"),
        "self_traffic_interval_ms": traffic.get("interval_ms"),
    }
    if sampling:
        values["sampling"] = {}
        for category, block in sampling.items():
            block = block or {}
            if not isinstance(block, dict):
                raise ConfigError(f"Config section 'sampling.{category}' must be a mapping")
            values["sampling"][str(category)] = dict(block)
    return {k: v for k, v in values.items() if v is not None}


_ENV_FIELDS = {
    "VESSEL_MONITOR_HOST": "host",
    "PORT": "port",
    "VESSEL_MONITOR_EXPORTER": "exporter",
    "VESSEL_MONITOR_OUTPUT_DIR": "output_dir",
    "VESSEL_MONITOR_LOG_FILE": "log_file",
    "LOG_LEVEL": "log_level",
    "VESSEL_MONITOR_SEED": "seed",
    "VESSEL_MONITOR_REQUEST_TIMEOUT_S": "request_timeout_s",
    "VESSEL_MONITOR_SELF_TRAFFIC": "self_traffic",
    "VESSEL_MONITOR_SELF_TRAFFIC_INTERVAL_MS": "self_traffic_interval_ms",
    "OTEL_SERVICE_NAME": "service_name",
}


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for var, name in _ENV_FIELDS.items():
        raw = environ.get(var, "").strip()
        if raw:
            values[name] = raw
    if environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip():
        values["otlp_endpoint"] = defaults.get_otlp_endpoint(environ)
    if environ.get("OTEL_EXPORTER_OTLP_PROTOCOL", "").strip():
        values["otlp_protocol"] = defaults.get_otlp_protocol(environ)
    return values


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _coerce(name: str, value: Any) -> Any:
    """Coerce env/YAML values to the declared field type."""
    if name in ("port", "metric_export_interval_ms", "self_traffic_interval_ms", "seed"):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if name in ("request_timeout_s", "shutdown_timeout_s"):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if name == "self_traffic":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(f"self_traffic must be a boolean, got {value!r}")
    if name == "sampling":
        return value
    return str(value)


def validate(settings: Settings) -> Settings:
    """Check ranges and choices; return settings unchanged or raise ConfigError."""
    if not 0 < settings.port < 65536:
        raise ConfigError(f"port must be in 1..65535, got {settings.port}")
    if settings.exporter not in defaults.EXPORTER_CHOICES:
        raise ConfigError(
            f"exporter must be one of {', '.join(defaults.EXPORTER_CHOICES)}, "
            f"got {settings.exporter!r}"
        )
    if settings.otlp_protocol not in defaults.PROTOCOL_CHOICES:
        raise ConfigError(
            f"otlp protocol must be one of {', '.join(defaults.PROTOCOL_CHOICES)}, "
            f"got {settings.otlp_protocol!r}"
        )
    if settings.request_timeout_s <= 0:
        raise ConfigError("request_timeout_s must be positive")
    if settings.shutdown_timeout_s < 0:
        raise ConfigError("shutdown_timeout_s must not be negative")
    if settings.metric_export_interval_ms <= 0:
        raise ConfigError("metric_export_interval_ms must be positive")
    if settings.self_traffic_interval_ms <= 0:
        raise ConfigError("self_traffic_interval_ms must be positive")
    if settings.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigError(f"Unknown log level {settings.log_level!r}")
    return settings


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Resolve settings from YAML and environment.

    :param config_path: YAML file; falls back to $VESSEL_MONITOR_CONFIG when None.
    :param environ: Environment mapping (defaults to os.environ); injectable for tests.
    :return: Validated Settings.
    """
    env = os.environ if environ is None else environ
    path_str = config_path or env.get(CONFIG_ENV_VAR, "").strip() or None
    values: dict[str, Any] = {}
    if path_str:
        path = Path(path_str)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        values.update(_from_yaml(load_yaml(path)))
    values.update(_from_env(env))

    known = {f.name for f in fields(Settings)}
    coerced = {name: _coerce(name, value) for name, value in values.items() if name in known}
    return validate(Settings(**coerced))
