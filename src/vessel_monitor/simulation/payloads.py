"""
Response payloads for the simulated vessel endpoints.

Value ranges mirror what the onboard sensors report on a Mediterranean
passage; they only need to look plausible on a dashboard.
"""

import random
import time
from collections.abc import Callable
from typing import Any

from ..statistics import (
    BernoulliDistribution,
    Distribution,
    UniformDistribution,
    UniformIntDistribution,
)
from .outcomes import OutcomeSample

ENGINE_READINGS: dict[str, Distribution] = {
    "rpm": UniformIntDistribution(1800, 2200),
    "temperature_c": UniformIntDistribution(75, 90),
    "oil_pressure_psi": UniformIntDistribution(45, 55),
    "fuel_rate_lph": UniformDistribution(12.5, 15.0),
    "coolant_temp_c": UniformIntDistribution(70, 80),
    "battery_volts": UniformDistribution(13.8, 14.2),
}

NAVIGATION_READINGS: dict[str, Distribution] = {
    "latitude": UniformDistribution(41.9028, 41.9128),
    "longitude": UniformDistribution(12.4964, 12.5064),
    "speed_knots": UniformDistribution(8.5, 12.0),
    "heading": UniformIntDistribution(180, 200),
    "depth_meters": UniformIntDistribution(45, 70),
    "wind_speed_kt": UniformIntDistribution(12, 20),
}

DIAGNOSTIC_RESULTS: dict[str, Distribution] = {
    "engine_health": UniformIntDistribution(85, 95),
    "fuel_efficiency": UniformIntDistribution(92, 98),
    "vibration_level": UniformDistribution(0.2, 0.35),
    "exhaust_temp_c": UniformIntDistribution(350, 400),
    "next_maintenance_hours": UniformIntDistribution(150, 200),
}

DIAGNOSTIC_WARNING = "Minor oil pressure fluctuation detected"
_WARNING = BernoulliDistribution(p=0.2)
_ALERT_ID = UniformIntDistribution(0, 10000)

FAILURE_DETAILS = "Failed to read bilge pump sensor data"


def _draw(readings: dict[str, Distribution], rng: random.Random) -> dict[str, Any]:
    return {name: dist.sample(rng) for name, dist in readings.items()}


def sensor_reading(
    sensor_type: str,
    readings: dict[str, Distribution],
    rng: random.Random,
    clock: Callable[[], float] = time.time,
) -> dict[str, Any]:
    """Fast-read payload: timestamp plus a nested data object."""
    return {
        "sensor_type": sensor_type,
        "timestamp": int(clock()),
        "data": _draw(readings, rng),
        "status": "normal",
    }


def diagnostics_report(
    sample: OutcomeSample,
    rng: random.Random,
    clock: Callable[[], float] = time.time,
) -> dict[str, Any]:
    """Slow-analysis payload; analysis_time_ms is the simulated latency."""
    results = _draw(DIAGNOSTIC_RESULTS, rng)
    results["warnings"] = [DIAGNOSTIC_WARNING] if _WARNING.sample_bool(rng) else []
    return {
        "diagnostic_type": "full_system",
        "timestamp": int(clock()),
        "analysis_time_ms": sample.latency_ms,
        "results": results,
        "status": "completed",
    }


def alert_report(
    sample: OutcomeSample,
    rng: random.Random,
    clock: Callable[[], float] = time.time,
) -> dict[str, Any]:
    """Successful failure-prone payload; the alert type is the sampled variant."""
    return {
        "alert_id": _ALERT_ID.sample(rng),
        "type": sample.variant,
        "message": "All systems operational",
        "timestamp": int(clock()),
        "sensor_status": "online",
    }


def error_report(error: str, trace_id: str, details: str) -> dict[str, str]:
    """Error body shared by simulated failures, timeouts and handler crashes."""
    return {"error": error, "trace_id": trace_id, "details": details}


NOISE_MESSAGES = {
    "high_latency": "High Latency Response",
    "success": "Success Response",
}
NOISE_ERROR = "simulated internal error"
NOISE_ERROR_DETAILS = "Internal Server Error"


def noise_response(sample: OutcomeSample) -> dict[str, str]:
    return {"scenario": sample.variant, "message": NOISE_MESSAGES[sample.variant]}
