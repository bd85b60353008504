"""FastAPI application serving delayed hello responses."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from fastapi import FastAPI, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.background import BackgroundTask

from .. import __version__
from ..logging import get_logger, log_structured
from ..metrics import REQUEST_LATENCY
from ..settings import Settings

LOGGER = get_logger(__name__)

DEFAULT_RESPONSE_DELAY = 10.0
HELLO_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class RequestEvents(Protocol):
    """Subset of the coordinator used by the hello handler."""

    async def request_started(self) -> None: ...

    async def request_finished(self) -> None: ...


def make_hello_handler(
    name: str,
    events: RequestEvents,
    delay: float = DEFAULT_RESPONSE_DELAY,
) -> Callable[..., Awaitable[PlainTextResponse]]:
    """Build the hello endpoint for one instance.

    The request is announced to the coordinator before the delay starts and
    reported finished once the response body has been sent.
    """

    async def hello(path: str = "") -> PlainTextResponse:
        await events.request_started()
        start = time.perf_counter()
        await asyncio.sleep(delay)
        message = f"Hi, from instance: {name} \n"
        REQUEST_LATENCY.observe(time.perf_counter() - start)
        log_structured(LOGGER, "hello served", instance=name, path=f"/{path}", delay=delay)
        return PlainTextResponse(message, background=BackgroundTask(events.request_finished))

    return hello


def create_app(settings: Settings, events: RequestEvents, *, name: str) -> FastAPI:
    """Factory for the instance's FastAPI application."""

    app = FastAPI(title=settings.service_name, version=__version__)

    @app.api_route(
        "/health",
        methods=HELLO_METHODS,
        tags=["system"],
        status_code=status.HTTP_200_OK,
    )
    def health() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get(settings.metrics_path, tags=["system"], response_class=PlainTextResponse)
    def metrics() -> PlainTextResponse:
        data = generate_latest()
        return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)

    app.add_api_route(
        "/{path:path}",
        make_hello_handler(name, events, delay=settings.response_delay_interval),
        methods=HELLO_METHODS,
        response_class=PlainTextResponse,
        tags=["hello"],
    )
    return app


__all__ = ["DEFAULT_RESPONSE_DELAY", "RequestEvents", "create_app", "make_hello_handler"]
