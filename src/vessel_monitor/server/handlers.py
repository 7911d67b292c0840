"""
Simulated vessel endpoints.

Every sampling handler follows the same steps: open a sub-span for the
simulated operation, draw an outcome, sleep for exactly the sampled latency
(the only suspension point), build the payload for the drawn branch, set the
status and close the sub-span. The health check does none of this.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.requests import Request

from ..simulation import OutcomeSample, OutcomeSampler, payloads
from ..statistics import Distribution
from ..telemetry import MetricsRecorder, SpanRecorder
from .context import RequestContext

SENSOR_FAILURE = "sensor_failure"
SIMULATED_ERROR = "simulated_error"


class VesselHandlers:
    """Handlers for the vessel monitor routes, sharing one sampler and recorders."""

    def __init__(
        self,
        sampler: OutcomeSampler,
        spans: SpanRecorder,
        metrics: MetricsRecorder,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.sampler = sampler
        self.spans = spans
        self.metrics = metrics
        # Payload values draw from a separate stream.
        self.rng = rng if rng is not None else random.Random()
        self._sleep = sleep
        self._clock = clock

    async def _wait(self, sample: OutcomeSample) -> None:
        await self._sleep(sample.latency_ms / 1000.0)

    def _outcome_attributes(self, sample: OutcomeSample) -> dict[str, Any]:
        return {"simulated.latency_ms": sample.latency_ms, "outcome.branch": sample.branch.value}

    async def health(self, ctx: RequestContext, request: Request) -> dict[str, str]:
        return {"status": "healthy"}

    async def engine(self, ctx: RequestContext, request: Request) -> dict[str, Any]:
        return await self._read_sensors(
            ctx, "engine", "read-engine-sensors", payloads.ENGINE_READINGS
        )

    async def navigation(self, ctx: RequestContext, request: Request) -> dict[str, Any]:
        return await self._read_sensors(
            ctx, "navigation", "read-navigation-sensors", payloads.NAVIGATION_READINGS
        )

    async def _read_sensors(
        self,
        ctx: RequestContext,
        sensor_type: str,
        operation: str,
        readings: dict[str, Distribution],
    ) -> dict[str, Any]:
        with self.spans.child(ctx.otel_context, operation, {"sensor.type": sensor_type}) as span:
            sample = self.sampler.sample(sensor_type)
            self.spans.set_attributes(span, self._outcome_attributes(sample))
            await self._wait(sample)
            body = payloads.sensor_reading(sensor_type, readings, self.rng, self._clock)
            self.spans.set_ok(span)
        return body

    async def diagnostics(self, ctx: RequestContext, request: Request) -> dict[str, Any]:
        """Slow analysis; the complex_analysis attribute marks the high-latency branch."""
        with self.spans.child(
            ctx.otel_context, "run-engine-diagnostics", {"diagnostic.type": "full_system"}
        ) as span:
            sample = self.sampler.sample("diagnostics")
            attributes = self._outcome_attributes(sample)
            if sample.complex_analysis:
                attributes["complex_analysis"] = True
                ctx.logger.for_span(span).warning(
                    "complex diagnostic analysis detected",
                    extra={"latency_ms": sample.latency_ms},
                )
            self.spans.set_attributes(span, attributes)

            await self._wait(sample)

            self.metrics.record_diagnostic(complex_analysis=sample.complex_analysis)
            body = payloads.diagnostics_report(sample, self.rng, self._clock)
            self.spans.set_ok(span)
        return body

    async def alerts(self, ctx: RequestContext, request: Request) -> dict[str, Any]:
        """Failure-prone alert report: 500 with a correlatable error body on the error branch."""
        with self.spans.child(ctx.otel_context, "report-system-alert") as span:
            sample = self.sampler.sample("alerts")
            self.spans.set_attributes(span, self._outcome_attributes(sample))

            await self._wait(sample)

            if sample.is_error:
                cause = str(sample.variant)
                self.spans.set_error(span, cause, error_type=SENSOR_FAILURE)
                self.metrics.record_sensor_failure(SENSOR_FAILURE)
                ctx.logger.for_span(span).error("alert system failed", extra={"error": cause})
                ctx.set_status(500)
                return payloads.error_report(cause, ctx.trace_id, payloads.FAILURE_DETAILS)

            self.spans.set_attributes(span, {"alert.type": str(sample.variant)})
            body = payloads.alert_report(sample, self.rng, self._clock)
            self.spans.set_ok(span)
        return body

    async def noise(self, ctx: RequestContext, request: Request) -> dict[str, Any]:
        """Background noise on `/`: a high-latency, error or success scenario per request."""
        with self.spans.child(ctx.otel_context, "handle-request") as span:
            sample = self.sampler.sample("noise")
            attributes = self._outcome_attributes(sample)
            attributes["scenario"] = sample.variant
            self.spans.set_attributes(span, attributes)

            await self._wait(sample)

            if sample.is_error:
                self.spans.set_error(
                    span,
                    payloads.NOISE_ERROR,
                    error_type=SIMULATED_ERROR,
                    exception=RuntimeError(payloads.NOISE_ERROR),
                )
                ctx.logger.for_span(span).error(payloads.NOISE_ERROR)
                ctx.set_status(500)
                return payloads.error_report(
                    payloads.NOISE_ERROR, ctx.trace_id, payloads.NOISE_ERROR_DETAILS
                )

            self.spans.set_ok(span)
        return payloads.noise_response(sample)
