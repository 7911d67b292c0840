"""Isolation of telemetry backend failures from request handling."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager


@contextmanager
def backend_guard(logger: logging.Logger, action: str) -> Iterator[None]:
    """Swallow and log any exception raised by a tracing/metrics backend call."""
    try:
        yield
    except Exception:
        logger.debug("telemetry backend failed during %s", action, exc_info=True)
