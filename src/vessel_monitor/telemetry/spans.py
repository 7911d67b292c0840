"""
Span lifecycle for requests and simulated operations.

SpanRecorder is the only place the service talks to a Tracer. Every call is
guarded, so a misbehaving tracing backend (or a no-op one) never changes what
a handler does or returns.
"""

import asyncio
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

from opentelemetry.context import Context
from opentelemetry.trace import INVALID_SPAN, Span, SpanKind, Status, StatusCode, Tracer

from .guard import backend_guard

AttributeValue = str | bool | int | float

logger = logging.getLogger(__name__)


class SpanRecorder:
    """Start, annotate and end spans on an injected tracer."""

    def __init__(self, tracer: Tracer):
        self._tracer = tracer

    def start(
        self,
        name: str,
        *,
        context: Context | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Mapping[str, AttributeValue] | None = None,
    ) -> Span:
        """Start a span as a child of the span in `context` (a root span if there is none)."""
        span: Span = INVALID_SPAN
        with backend_guard(logger, "span start"):
            span = self._tracer.start_span(
                name, context=context, kind=kind, attributes=dict(attributes or {})
            )
        return span

    def set_attributes(self, span: Span, attributes: Mapping[str, AttributeValue]) -> None:
        with backend_guard(logger, "span attributes"):
            span.set_attributes(dict(attributes))

    def set_ok(self, span: Span) -> None:
        with backend_guard(logger, "span status"):
            span.set_status(Status(StatusCode.OK))

    def set_error(
        self,
        span: Span,
        message: str,
        *,
        error_type: str | None = None,
        exception: BaseException | None = None,
    ) -> None:
        """Mark the span as failed; optionally tag error.type and record the exception."""
        with backend_guard(logger, "span status"):
            if error_type:
                span.set_attribute("error.type", error_type)
            if exception is not None:
                span.record_exception(exception)
            span.set_status(Status(StatusCode.ERROR, message))

    def end(self, span: Span) -> None:
        with backend_guard(logger, "span end"):
            span.end()

    @contextmanager
    def child(
        self,
        context: Context,
        name: str,
        attributes: Mapping[str, AttributeValue] | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
    ) -> Iterator[Span]:
        """
        Child span for a simulated operation, ended on every exit path.

        Cancellation marks the span as `cancelled`; any other exception is
        recorded on the span and re-raised. Callers set the ok/error status
        for normal exits themselves.
        """
        span = self.start(name, context=context, kind=kind, attributes=attributes)
        try:
            yield span
        except asyncio.CancelledError:
            self.set_error(span, "cancelled", error_type="cancelled")
            raise
        except Exception as e:
            self.set_error(span, str(e) or type(e).__name__, exception=e)
            raise
        finally:
            self.end(span)

