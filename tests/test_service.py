"""Smoke tests for the instance FastAPI application."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hello_instance.service.app import DEFAULT_RESPONSE_DELAY, create_app, make_hello_handler
from hello_instance.settings import Settings


class RecordingEvents:
    """Coordinator stand-in recording request lifecycle events."""

    def __init__(self) -> None:
        self.events: list[str] = []

    async def request_started(self) -> None:
        self.events.append("started")

    async def request_finished(self) -> None:
        self.events.append("finished")


SETTINGS = Settings(
    project_id="unit-test-project",
    topic_name="unit-test-topic",
    response_delay_interval=0,
)


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def client(events: RecordingEvents) -> TestClient:
    return TestClient(create_app(SETTINGS, events, name="test-instance"))


def test_root_returns_greeting_and_reports_lifecycle(
    client: TestClient, events: RecordingEvents
) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Hi, from instance: test-instance \n"
    assert response.headers["content-type"].startswith("text/plain")
    assert events.events == ["started", "finished"]


@pytest.mark.parametrize(("method", "path"), [("GET", "/anything/else"), ("POST", "/")])
def test_any_path_and_method_is_served_by_hello(
    client: TestClient, events: RecordingEvents, method: str, path: str
) -> None:
    response = client.request(method, path)
    assert response.status_code == 200
    assert "test-instance" in response.text
    assert events.events == ["started", "finished"]


def test_health_is_empty_and_stateless(client: TestClient, events: RecordingEvents) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.content == b""
    assert events.events == []


def test_metrics_endpoint_exposes_prometheus_text(
    client: TestClient, events: RecordingEvents
) -> None:
    client.get("/")
    response = client.get(SETTINGS.metrics_path)
    assert response.status_code == 200
    assert "hello_instance_request_latency_seconds" in response.text
    assert events.events == ["started", "finished"]


@pytest.mark.asyncio
async def test_finish_is_reported_after_response_is_built(events: RecordingEvents) -> None:
    handler = make_hello_handler("test-instance", events, delay=0)
    response = await handler()
    assert events.events == ["started"]
    assert response.body == b"Hi, from instance: test-instance \n"

    assert response.background is not None
    await response.background()
    assert events.events == ["started", "finished"]


def test_handler_default_delay_differs_from_env_fallback() -> None:
    assert DEFAULT_RESPONSE_DELAY == 10
    assert SETTINGS.response_delay_interval == 0
