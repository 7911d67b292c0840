"""
FastAPI application factory.

create_app() wires the collaborators once (recorders, sampler, handlers) and
registers every route through instrument(); nothing is allocated per request
except the request's own context. The optional self-traffic task lives and
dies with the application lifespan.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI

from .. import __version__
from ..config import Settings
from ..simulation import OutcomeSampler, build_policies
from ..telemetry import MetricsRecorder, SpanRecorder, Telemetry
from ..telemetry.logs import LOGGER_NAME
from ..traffic import SelfTrafficGenerator
from .handlers import VesselHandlers
from .middleware import instrument


@dataclass(frozen=True)
class RouteSpec:
    path: str
    handler: str
    # Outcome category sampled by the handler; None for zero-logic routes.
    category: str | None


ROUTES = (
    RouteSpec("/health", "health", None),
    RouteSpec("/api/sensors/engine", "engine", "engine"),
    RouteSpec("/api/sensors/navigation", "navigation", "navigation"),
    RouteSpec("/api/analytics/diagnostics", "diagnostics", "diagnostics"),
    RouteSpec("/api/alerts/system", "alerts", "alerts"),
    RouteSpec("/", "noise", "noise"),
)


def _local_base_url(settings: Settings) -> str:
    host = "127.0.0.1" if settings.host in ("0.0.0.0", "::", "") else settings.host
    return f"http://{host}:{settings.port}"


def create_app(
    settings: Settings,
    telemetry: Telemetry,
    *,
    logger: logging.Logger | None = None,
    sampler: OutcomeSampler | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> FastAPI:
    """
    Build the vessel monitor application.

    :param settings: Resolved settings (timeouts, sampling overrides, seed, self traffic).
    :param telemetry: Tracer, meter and propagator to instrument with.
    :param logger: Service logger; defaults to the `vessel_monitor` logger.
    :param sampler: Outcome sampler; defaults to one built from settings.sampling and seed.
    :param sleep: Suspension used for simulated latency.
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    spans = SpanRecorder(telemetry.tracer)
    metrics = MetricsRecorder(telemetry.meter)
    if sampler is None:
        sampler = OutcomeSampler(build_policies(settings.sampling), seed=settings.seed)
    payload_seed = None if settings.seed is None else settings.seed + 1
    handlers = VesselHandlers(
        sampler, spans, metrics, rng=random.Random(payload_seed), sleep=sleep
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        generator = None
        if settings.self_traffic:
            generator = SelfTrafficGenerator(
                _local_base_url(settings),
                spans,
                telemetry.propagator,
                logger,
                interval_s=settings.self_traffic_interval_ms / 1000.0,
            )
            generator.start()
        app.state.self_traffic = generator
        try:
            yield
        finally:
            if generator is not None:
                await generator.stop()

    app = FastAPI(title="Vessel Monitor", version=__version__, lifespan=lifespan)
    for spec in ROUTES:
        endpoint = instrument(
            getattr(handlers, spec.handler),
            route=spec.path,
            spans=spans,
            metrics=metrics,
            logger=logger,
            propagator=telemetry.propagator,
            timeout_s=settings.request_timeout_s,
        )
        app.add_api_route(spec.path, endpoint, methods=["GET"], name=spec.handler)

    app.state.sampler = sampler
    app.state.telemetry = telemetry
    return app
