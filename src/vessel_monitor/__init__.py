"""
Vessel Monitor - synthetic maritime telemetry service.

This package serves fabricated vessel sensor, diagnostics and alert data over
HTTP, with every request traced, measured and logged through OpenTelemetry so
an observability pipeline can be exercised end to end.
"""

__version__ = "1.0.0"
