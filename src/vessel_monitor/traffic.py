"""
Background self-traffic.

SelfTrafficGenerator calls the service's own routes at a fixed interval so
the telemetry pipeline has a steady stream of traces without an external load
generator. The route mix follows the production load profile: continuous
engine and navigation polling, occasional diagnostics, rare alert checks.

Each call is a CLIENT span whose context is injected into the request
headers, so the server-side span joins the same trace. The generator shares
nothing with request handling except the HTTP endpoint it calls.
"""

import asyncio
import contextlib
import logging
import random

import httpx
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import SpanKind

from .statistics import CategoricalDistribution
from .telemetry import CorrelatedLogger, SpanRecorder

DEFAULT_ROUTE_MIX = {
    "/api/sensors/engine": 0.50,
    "/api/sensors/navigation": 0.30,
    "/api/analytics/diagnostics": 0.12,
    "/api/alerts/system": 0.08,
}


class SelfTrafficGenerator:
    """Periodic task issuing traced GET requests against base_url."""

    def __init__(
        self,
        base_url: str,
        spans: SpanRecorder,
        propagator: TextMapPropagator,
        logger: logging.Logger,
        interval_s: float = 0.1,
        route_mix: dict[str, float] | None = None,
        rng: random.Random | None = None,
        client: httpx.AsyncClient | None = None,
        request_timeout_s: float = 30.0,
    ):
        mix = route_mix or DEFAULT_ROUTE_MIX
        self.base_url = base_url.rstrip("/")
        self.interval_s = interval_s
        self._routes = CategoricalDistribution(categories=list(mix), weights=list(mix.values()))
        self._spans = spans
        self._propagator = propagator
        self._logger = logger
        self._rng = rng if rng is not None else random.Random()
        self._client = client
        self._request_timeout_s = request_timeout_s
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, client: httpx.AsyncClient) -> int | None:
        """Issue one request; return its status code, or None when it failed."""
        route = self._routes.sample(self._rng)
        with self._spans.child(
            Context(),
            "self-ping",
            {"http.method": "GET", "http.route": route},
            kind=SpanKind.CLIENT,
        ) as span:
            headers: dict[str, str] = {}
            self._propagator.inject(headers, context=trace.set_span_in_context(span))
            try:
                response = await client.get(f"{self.base_url}{route}", headers=headers)
            except httpx.HTTPError as e:
                self._spans.set_error(span, str(e) or type(e).__name__, exception=e)
                CorrelatedLogger(self._logger, span, route=route).warning(
                    "self traffic request failed", extra={"error": str(e)}
                )
                return None
            self._spans.set_attributes(span, {"http.status_code": response.status_code})
            if response.status_code >= 400:
                self._spans.set_error(span, f"HTTP {response.status_code}")
            else:
                self._spans.set_ok(span)
            return response.status_code

    async def run(self) -> None:
        """Tick at a fixed cadence until cancelled."""
        loop = asyncio.get_running_loop()
        async with contextlib.AsyncExitStack() as stack:
            client = self._client
            if client is None:
                client = await stack.enter_async_context(
                    httpx.AsyncClient(timeout=self._request_timeout_s)
                )
            next_at = loop.time()
            while True:
                await self.tick(client)
                next_at += self.interval_s
                await asyncio.sleep(max(0.0, next_at - loop.time()))

    def start(self) -> asyncio.Task:
        if self.running:
            raise RuntimeError("self traffic generator already running")
        self._logger.info(
            "starting self traffic",
            extra={"base_url": self.base_url, "interval_ms": round(self.interval_s * 1000)},
        )
        self._task = asyncio.get_running_loop().create_task(self.run(), name="self-traffic")
        return self._task

    async def stop(self) -> None:
        """Cancel the task and wait for its in-flight request span to close."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._logger.info("self traffic stopped")
