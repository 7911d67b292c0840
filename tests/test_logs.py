"""Tests for JSON log formatting and trace-correlated loggers."""

import json
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from opentelemetry.trace import format_span_id, format_trace_id

from vessel_monitor.telemetry import CorrelatedLogger, configure_logging, json_formatter
from vessel_monitor.telemetry.logs import LOGGER_NAME


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "vessel_monitor", logging.WARNING, __file__, 1, "complex diagnostic %s", ("analysis",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields() -> None:
    line = json_formatter().format(make_record(trace_id="ab" * 16, latency_ms=1200))
    payload = json.loads(line)
    assert payload["level"] == "warning"
    assert payload["message"] == "complex diagnostic analysis"
    assert payload["logger"] == "vessel_monitor"
    assert payload["trace_id"] == "ab" * 16
    assert payload["latency_ms"] == 1200
    stamp = datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))
    assert stamp.utcoffset() == timedelta(0)
    assert "exception" not in payload
    assert "event" not in payload


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("bilge pump")
    except RuntimeError:
        record = make_record()
        record.exc_info = sys.exc_info()
    payload = json.loads(json_formatter().format(record))
    assert "RuntimeError: bilge pump" in payload["exception"]


def test_correlated_logger_stamps_ids(spans, logger, caplog) -> None:
    parent = spans.start("/api/alerts/system")
    log = CorrelatedLogger(logger, parent, method="GET", path="/api/alerts/system")
    assert log.trace_id == format_trace_id(parent.get_span_context().trace_id)
    assert log.span_id == format_span_id(parent.get_span_context().span_id)

    child = spans.start("report-system-alert")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log.info("handling request", extra={"attempt": 1})
        log.for_span(child).error("alert system failed")

    first, second = caplog.records
    assert first.span_id == log.span_id
    assert first.attempt == 1
    assert second.span_id == format_span_id(child.get_span_context().span_id)
    assert second.path == "/api/alerts/system"
    spans.end(child)
    spans.end(parent)


@pytest.fixture
def restore_service_logger():
    """Undo configure_logging so later tests see service records through caplog."""
    yield
    service = logging.getLogger(LOGGER_NAME)
    for handler in list(service.handlers):
        service.removeHandler(handler)
        handler.close()
    service.propagate = True
    service.setLevel(logging.NOTSET)


def test_configure_logging_file_sink(tmp_path: Path, restore_service_logger) -> None:
    log_file = tmp_path / "app" / "app.log"
    logger = configure_logging("INFO", str(log_file))
    assert logger.name == LOGGER_NAME
    assert not logger.propagate
    logger.info("starting maritime vessel monitoring system", extra={"addr": ":8080"})
    for handler in logger.handlers:
        handler.flush()

    (line,) = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(line)["addr"] == ":8080"


def test_configure_logging_is_idempotent(restore_service_logger) -> None:
    configure_logging("INFO")
    logger = configure_logging("DEBUG")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_unusable_log_file_is_skipped(tmp_path: Path, restore_service_logger) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    logger = configure_logging("INFO", str(blocker / "app.log"))
    assert len(logger.handlers) == 1
