"""
Structured, trace-correlated logging.

Log records are JSON objects with ISO-8601 timestamps, written to stdout and
optionally to a file, and bridged to the OpenTelemetry log pipeline when a
LoggerProvider is configured. CorrelatedLogger stamps every record with the
trace/span ids of the span it was bound to.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.trace import Span, format_span_id, format_trace_id

LOGGER_NAME = "vessel_monitor"


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering a stdlib record and its `extra` fields as one JSON line."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(default=str),
        ],
    )


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    logger_provider: LoggerProvider | None = None,
) -> logging.Logger:
    """
    Configure the service logger and return it.

    Handlers installed by an earlier call are replaced, so this is safe to call
    again (tests, reloads). A log file whose directory cannot be created is
    reported and skipped; stdout logging always works.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level.upper())
    logger.propagate = False

    formatter = json_formatter()
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(formatter)
    logger.addHandler(stdout)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.error("failed to create log file", extra={"path": log_file, "error": str(e)})
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if logger_provider is not None:
        logger.addHandler(LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider))
    return logger


class CorrelatedLogger(logging.LoggerAdapter):
    """
    Logger bound to one span.

    Every record carries trace_id/span_id of that span plus the bound fields
    (method, path, ...). Use for_span() to log from a child span.
    """

    def __init__(self, logger: logging.Logger, span: Span, **fields: Any):
        ctx = span.get_span_context()
        self.trace_id = format_trace_id(ctx.trace_id)
        self.span_id = format_span_id(ctx.span_id)
        self._fields = fields
        super().__init__(logger, {**fields, "trace_id": self.trace_id, "span_id": self.span_id})

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def for_span(self, span: Span) -> "CorrelatedLogger":
        return CorrelatedLogger(self.logger, span, **self._fields)
