"""
Request instrumentation.

instrument() wraps a handler `H(ctx, request) -> body` into a Starlette
endpoint. Per request it:

  1. extracts W3C trace context and baggage from the headers (missing or
     malformed headers start a fresh trace)
  2. starts a SERVER span named after the route
  3. binds a CorrelatedLogger to the span and logs "handling request"
  4. starts the timer
  5. runs the handler as a task, raced against the request deadline and a
     client disconnect
  6. records request count and duration
  7. sets span status from the final status code
  8. logs "request completed"
  9. ends the span

Steps 6-9 run on every exit path: normal return, deadline (504), unexpected
exception (500), client disconnect (499) and cancellation (499, re-raised).
On deadline, disconnect and cancellation the handler task is cancelled and
awaited, so its child spans have ended before the request span does.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from opentelemetry import baggage, trace
from opentelemetry import context as context_api
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import SpanKind
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..defaults import DEFAULT_REQUEST_TIMEOUT_S
from ..simulation.payloads import error_report
from ..telemetry import CorrelatedLogger, MetricsRecorder, SpanRecorder
from .context import RequestContext

Handler = Callable[[RequestContext, Request], Awaitable[Any]]
Endpoint = Callable[[Request], Awaitable[Response]]

TIMEOUT_HEADER = "x-request-timeout-ms"
# nginx convention for "client closed request"; never written to a socket.
CLIENT_CLOSED_REQUEST = 499


def request_budget_s(request: Request, default_s: float) -> float:
    """Server timeout, shortened by a positive X-Request-Timeout-Ms header."""
    raw = request.headers.get(TIMEOUT_HEADER)
    if raw:
        try:
            ms = float(raw)
        except ValueError:
            return default_s
        if ms > 0:
            return min(default_s, ms / 1000.0)
    return default_s


async def wait_for_disconnect(request: Request) -> None:
    """Return once the ASGI server reports that the client went away."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def _cancel_and_wait(task: asyncio.Future) -> None:
    task.cancel()
    await asyncio.wait({task})


def instrument(
    handler: Handler,
    *,
    route: str,
    spans: SpanRecorder,
    metrics: MetricsRecorder,
    logger: logging.Logger,
    propagator: TextMapPropagator,
    timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
) -> Endpoint:
    """Return an endpoint that runs `handler` inside a traced, measured, logged request."""

    async def endpoint(request: Request) -> Response:
        method = request.method
        parent = propagator.extract(carrier=request.headers)
        span = spans.start(
            route,
            context=parent,
            kind=SpanKind.SERVER,
            attributes={
                "http.method": method,
                "http.url": str(request.url),
                "http.route": route,
            },
        )
        log = CorrelatedLogger(logger, span, method=method, path=request.url.path)
        log.info("handling request")

        budget_s = request_budget_s(request, timeout_s)
        ctx = RequestContext(
            method=method,
            route=route,
            span=span,
            otel_context=trace.set_span_in_context(span, parent),
            logger=log,
            deadline=time.monotonic() + budget_s,
            baggage=dict(baggage.get_all(parent)),
        )

        start = time.perf_counter()
        status_code = ctx.status_code
        failure: BaseException | None = None
        body: Any = None
        # Task-local; read by the OTLP log bridge.
        token = context_api.attach(ctx.otel_context)
        handler_task = asyncio.ensure_future(handler(ctx, request))
        disconnect = asyncio.ensure_future(wait_for_disconnect(request))
        try:
            done, _ = await asyncio.wait(
                {handler_task, disconnect},
                timeout=ctx.remaining_s(),
                return_when=asyncio.FIRST_COMPLETED,
            )
            if handler_task in done:
                body = handler_task.result()
                status_code = ctx.status_code
            elif disconnect in done:
                # A failed receive channel surfaces as a handler failure.
                disconnect.result()
                await _cancel_and_wait(handler_task)
                status_code = CLIENT_CLOSED_REQUEST
                log.warning("client disconnected")
                body = error_report("client closed request", ctx.trace_id, "client disconnected")
            else:
                await _cancel_and_wait(handler_task)
                status_code = 504
                log.error("request timed out", extra={"timeout_ms": round(budget_s * 1000)})
                body = error_report(
                    "request timed out",
                    ctx.trace_id,
                    f"no response within {round(budget_s * 1000)} ms",
                )
        except asyncio.CancelledError as e:
            failure = e
            status_code = CLIENT_CLOSED_REQUEST
            await _cancel_and_wait(handler_task)
            log.warning("request cancelled")
            raise
        except Exception as e:
            failure = e
            status_code = 500
            log.exception("handler failed")
            body = error_report("internal error", ctx.trace_id, str(e) or type(e).__name__)
        finally:
            disconnect.cancel()
            handler_task.cancel()
            context_api.detach(token)
            duration_ms = (time.perf_counter() - start) * 1000.0
            metrics.record_request(method, route, status_code, duration_ms)
            spans.set_attributes(span, {"http.status_code": status_code})
            if status_code >= 400:
                spans.set_error(
                    span,
                    f"HTTP {status_code}",
                    exception=failure if isinstance(failure, Exception) else None,
                )
            else:
                spans.set_ok(span)
            log.info(
                "request completed",
                extra={"status": status_code, "duration_ms": round(duration_ms, 3)},
            )
            spans.end(span)

        return JSONResponse(body, status_code=status_code)

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    return endpoint
