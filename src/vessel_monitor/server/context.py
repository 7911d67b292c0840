"""Request-scoped context threaded through middleware and handlers."""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from opentelemetry.context import Context
from opentelemetry.trace import Span

from ..telemetry import CorrelatedLogger

DEFAULT_STATUS = 200


@dataclass
class RequestContext:
    """
    Everything a handler may know about its request.

    Created by the middleware on entry and dropped when the response is
    written; never shared between requests. The status slot may be set once.
    """

    method: str
    route: str
    span: Span
    otel_context: Context
    logger: CorrelatedLogger
    deadline: float
    baggage: Mapping[str, object] = field(default_factory=dict)
    _status_code: int | None = field(default=None, repr=False)

    @property
    def trace_id(self) -> str:
        return self.logger.trace_id

    @property
    def span_id(self) -> str:
        return self.logger.span_id

    @property
    def status_code(self) -> int:
        return DEFAULT_STATUS if self._status_code is None else self._status_code

    def set_status(self, status_code: int) -> None:
        if self._status_code is not None:
            raise RuntimeError(
                f"status already set to {self._status_code}, refusing {status_code}"
            )
        self._status_code = status_code

    def remaining_s(self) -> float:
        """Seconds left before the deadline (monotonic clock); never negative."""
        return max(0.0, self.deadline - time.monotonic())
