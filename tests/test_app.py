"""End-to-end tests of the vessel routes through the FastAPI application."""

import asyncio
import logging
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from opentelemetry.trace import SpanKind, StatusCode, format_span_id, format_trace_id

from conftest import (
    TRACEPARENT,
    TRACEPARENT_SPAN_ID,
    TRACEPARENT_TRACE_ID,
    metric_points,
    spans_by_name,
)
from vessel_monitor.config import Settings
from vessel_monitor.server import ROUTES, create_app
from vessel_monitor.server.middleware import CLIENT_CLOSED_REQUEST
from vessel_monitor.telemetry.metrics import (
    DIAGNOSTICS_COUNT,
    REQUEST_COUNT,
    SENSOR_FAILURE_COUNT,
)


@pytest.fixture
def make_client(telemetry, logger, fake_sleep):
    def _make(**settings_kwargs) -> TestClient:
        settings = Settings(exporter="none", **settings_kwargs)
        app = create_app(settings, telemetry, logger=logger, sleep=fake_sleep)
        return TestClient(app)

    return _make


def test_health_exact_body(make_client, span_exporter, fake_sleep) -> None:
    with make_client() as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["content-type"] == "application/json"
    # Zero-logic route: one server span, no simulated latency.
    (span,) = span_exporter.get_finished_spans()
    assert span.name == "/health"
    assert fake_sleep.calls == []


@pytest.mark.parametrize(
    "path,sensor_type,operation,low,high",
    [
        ("/api/sensors/engine", "engine", "read-engine-sensors", 50, 80),
        ("/api/sensors/navigation", "navigation", "read-navigation-sensors", 40, 60),
    ],
)
def test_fast_read_routes(
    make_client, span_exporter, fake_sleep, path, sensor_type, operation, low, high
) -> None:
    with make_client(seed=3) as client:
        response = client.get(path)

    assert response.status_code == 200
    body = response.json()
    assert body["sensor_type"] == sensor_type
    assert body["status"] == "normal"
    assert isinstance(body["timestamp"], int)
    assert body["data"]

    (delay,) = fake_sleep.calls
    assert low / 1000 <= delay < high / 1000

    finished = spans_by_name(span_exporter)
    server, child = finished[path], finished[operation]
    assert server.kind is SpanKind.SERVER
    assert child.parent.span_id == server.context.span_id
    assert child.context.trace_id == server.context.trace_id
    assert child.attributes["sensor.type"] == sensor_type
    assert child.attributes["simulated.latency_ms"] == round(delay * 1000)
    assert child.status.status_code is StatusCode.OK


def test_diagnostics_slow_branch(make_client, span_exporter, metric_reader, fake_sleep) -> None:
    with make_client(sampling={"diagnostics": {"slow_probability": 1.0}}) as client:
        response = client.get("/api/analytics/diagnostics")

    assert response.status_code == 200
    body = response.json()
    assert body["diagnostic_type"] == "full_system"
    assert body["status"] == "completed"
    assert 1000 <= body["analysis_time_ms"] < 1500
    assert fake_sleep.calls == [body["analysis_time_ms"] / 1000]

    child = spans_by_name(span_exporter)["run-engine-diagnostics"]
    assert child.attributes["complex_analysis"] is True
    assert child.attributes["outcome.branch"] == "slow"
    (point,) = metric_points(metric_reader, DIAGNOSTICS_COUNT)
    assert point.attributes["complex_analysis"] is True


def test_diagnostics_normal_branch(make_client, span_exporter) -> None:
    with make_client(sampling={"diagnostics": {"slow_probability": 0.0}}) as client:
        body = client.get("/api/analytics/diagnostics").json()

    assert 300 <= body["analysis_time_ms"] < 600
    child = spans_by_name(span_exporter)["run-engine-diagnostics"]
    assert "complex_analysis" not in child.attributes


def test_alerts_error_branch(make_client, span_exporter, metric_reader) -> None:
    with make_client(sampling={"alerts": {"error_probability": 1.0}}) as client:
        response = client.get("/api/alerts/system", headers={"traceparent": TRACEPARENT})

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {
        "error": "sensor communication failure",
        "trace_id": TRACEPARENT_TRACE_ID,
        "details": "Failed to read bilge pump sensor data",
    }

    finished = spans_by_name(span_exporter)
    child = finished["report-system-alert"]
    assert child.status.status_code is StatusCode.ERROR
    assert child.attributes["error.type"] == "sensor_failure"
    assert finished["/api/alerts/system"].status.status_code is StatusCode.ERROR

    (failure,) = metric_points(metric_reader, SENSOR_FAILURE_COUNT)
    assert failure.value == 1
    (count,) = metric_points(metric_reader, REQUEST_COUNT)
    assert count.attributes["http.status_code"] == 500
    assert count.attributes["http.route"] == "/api/alerts/system"


def test_alerts_success_branch(make_client, span_exporter, metric_reader) -> None:
    with make_client(sampling={"alerts": {"error_probability": 0.0}}) as client:
        response = client.get("/api/alerts/system")

    assert response.status_code == 200
    body = response.json()
    assert body["type"] in ("info", "warning", "normal")
    assert body["sensor_status"] == "online"
    child = spans_by_name(span_exporter)["report-system-alert"]
    assert child.attributes["alert.type"] == body["type"]
    assert metric_points(metric_reader, SENSOR_FAILURE_COUNT) == []


def test_every_route_answers_json(make_client) -> None:
    with make_client(seed=1) as client:
        for spec in ROUTES:
            response = client.get(spec.path)
            assert response.headers["content-type"] == "application/json"
            assert response.status_code in (200, 500)


def test_server_span_trace_id_matches_error_body(make_client, span_exporter) -> None:
    with make_client(sampling={"alerts": {"error_probability": 1.0}}) as client:
        body = client.get("/api/alerts/system").json()

    server = spans_by_name(span_exporter)["/api/alerts/system"]
    assert server.parent is None
    assert body["trace_id"] == format_trace_id(server.context.trace_id)


def test_seeded_apps_reproduce_outcomes(telemetry, logger, fake_sleep) -> None:
    def run() -> list:
        settings = Settings(exporter="none", seed=42)
        app = create_app(settings, telemetry, logger=logger, sleep=fake_sleep)
        with TestClient(app) as client:
            return [
                client.get("/api/sensors/engine").json()["data"],
                client.get("/api/analytics/diagnostics").json()["analysis_time_ms"],
                client.get("/api/alerts/system").status_code,
            ]

    assert run() == run()


def test_request_count_per_route(make_client, metric_reader) -> None:
    with make_client() as client:
        for _ in range(3):
            client.get("/health")

    (point,) = metric_points(metric_reader, REQUEST_COUNT)
    assert point.value == 3
    assert point.attributes["http.route"] == "/health"
    assert point.attributes["http.method"] == "GET"


@pytest.mark.parametrize(
    "overrides,scenario,message,delay",
    [
        ({"high_latency_probability": 1.0, "error_probability": 0.0},
         "high_latency", "High Latency Response", 1.2),
        ({"high_latency_probability": 0.0, "error_probability": 0.0},
         "success", "Success Response", 0.0),
    ],
)
def test_noise_route_scenarios(
    make_client, span_exporter, fake_sleep, overrides, scenario, message, delay
) -> None:
    with make_client(sampling={"noise": overrides}) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"scenario": scenario, "message": message}
    assert fake_sleep.calls == [delay]
    child = spans_by_name(span_exporter)["handle-request"]
    assert child.attributes["scenario"] == scenario
    assert child.status.status_code is StatusCode.OK


def test_noise_route_error_scenario(make_client, span_exporter, metric_reader) -> None:
    noise = {"high_latency_probability": 0.0, "error_probability": 1.0}
    with make_client(sampling={"noise": noise}) as client:
        response = client.get("/", headers={"traceparent": TRACEPARENT})

    assert response.status_code == 500
    assert response.json() == {
        "error": "simulated internal error",
        "trace_id": TRACEPARENT_TRACE_ID,
        "details": "Internal Server Error",
    }
    finished = spans_by_name(span_exporter)
    child = finished["handle-request"]
    assert child.attributes["scenario"] == "error"
    assert child.status.status_code is StatusCode.ERROR
    assert [event.name for event in child.events] == ["exception"]
    assert finished["/"].attributes["http.status_code"] == 500
    (count,) = metric_points(metric_reader, REQUEST_COUNT)
    assert count.attributes["http.route"] == "/"


def http_scope(path: str) -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
    }


def test_client_disconnect_cancels_slow_diagnostics(
    telemetry, logger, span_exporter, metric_reader
) -> None:
    """The client hangs up 50 ms into a 1-1.5 s analysis; the handler stops with it."""
    settings = Settings(exporter="none", sampling={"diagnostics": {"slow_probability": 1.0}})
    app = create_app(settings, telemetry, logger=logger)
    inbox = [{"type": "http.request", "body": b"", "more_body": False}]
    sent: list[dict] = []

    async def receive() -> dict:
        if inbox:
            return inbox.pop(0)
        await asyncio.sleep(0.05)
        return {"type": "http.disconnect"}

    async def send(message: dict) -> None:
        sent.append(message)

    start = time.perf_counter()
    asyncio.run(app(http_scope("/api/analytics/diagnostics"), receive, send))
    elapsed = time.perf_counter() - start

    assert elapsed < 0.5
    assert sent[0]["status"] == CLIENT_CLOSED_REQUEST
    finished = spans_by_name(span_exporter)
    child = finished["run-engine-diagnostics"]
    assert child.attributes["complex_analysis"] is True
    assert child.attributes["error.type"] == "cancelled"
    server = finished["/api/analytics/diagnostics"]
    assert server.attributes["http.status_code"] == CLIENT_CLOSED_REQUEST
    assert server.status.status_code is StatusCode.ERROR
    (count,) = metric_points(metric_reader, REQUEST_COUNT)
    assert count.attributes["http.status_code"] == CLIENT_CLOSED_REQUEST
    assert metric_points(metric_reader, DIAGNOSTICS_COUNT) == []


def test_concurrent_requests_overlap_and_stay_isolated(
    telemetry, logger, span_exporter, caplog
) -> None:
    """Twenty engine reads with real latency finish in about the time of the slowest one."""
    app = create_app(Settings(exporter="none", seed=8), telemetry, logger=logger)
    trace_ids = [f"{i + 1:032x}" for i in range(20)]

    async def run() -> list[httpx.Response]:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await asyncio.gather(
                *(
                    client.get(
                        "/api/sensors/engine",
                        headers={"traceparent": f"00-{trace_id}-{TRACEPARENT_SPAN_ID}-01"},
                    )
                    for trace_id in trace_ids
                )
            )

    with caplog.at_level(logging.INFO, logger=logger.name):
        start = time.perf_counter()
        responses = asyncio.run(run())
        elapsed = time.perf_counter() - start

    assert [r.status_code for r in responses] == [200] * len(trace_ids)

    finished = span_exporter.get_finished_spans()
    latencies_s = [
        span.attributes["simulated.latency_ms"] / 1000
        for span in finished
        if span.name == "read-engine-sensors"
    ]
    assert len(latencies_s) == len(trace_ids)
    assert max(latencies_s) * 0.9 <= elapsed < sum(latencies_s) / 2

    records = [r for r in caplog.records if r.name == logger.name]
    for trace_id in trace_ids:
        mine = [s for s in finished if format_trace_id(s.context.trace_id) == trace_id]
        by_name = {s.name: s for s in mine}
        assert set(by_name) == {"/api/sensors/engine", "read-engine-sensors"}
        server = by_name["/api/sensors/engine"]
        assert by_name["read-engine-sensors"].parent.span_id == server.context.span_id

        logged = [r for r in records if r.trace_id == trace_id]
        assert [r.getMessage() for r in logged] == ["handling request", "request completed"]
        assert {r.span_id for r in logged} == {format_span_id(server.context.span_id)}
