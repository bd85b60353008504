"""Process entry point wiring the coordinator, load generator and HTTP server."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Iterator
from typing import NoReturn

import uvicorn
from pydantic import ValidationError

from .coordinator import Coordinator
from .errors import PublishError, PublisherConnectionError
from .load_generator import DEFAULT_WINDOW_SECONDS, start_load_generator
from .logging import configure_logging, get_logger
from .publisher import Publisher, PubSubPublisher
from .service import create_app
from .settings import Settings, get_settings
from .state import InstanceState, generate_name

LOGGER = get_logger(__name__)
TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGABRT)


class InstanceServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the coordinator."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


async def run_instance(
    settings: Settings,
    publisher: Publisher,
    *,
    host: str | None = None,
    port: int | None = None,
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
) -> int:
    """Serve until the instance is terminated.

    Returns:
        The process exit code: 0 after a termination signal, 1 when a status
        message could not be published or the HTTP server stopped on its own.
    """
    state = InstanceState(name=generate_name())
    LOGGER.info("Starting instance: %s ...", state.name)
    coordinator = Coordinator(state, publisher, message_interval=settings.message_interval)

    loop = asyncio.get_running_loop()
    for sig in TERMINATION_SIGNALS:
        loop.add_signal_handler(sig, coordinator.request_termination)

    app = create_app(settings, coordinator, name=state.name)
    server = InstanceServer(
        uvicorn.Config(
            app,
            host=host if host is not None else settings.host,
            port=port if port is not None else settings.port,
            log_config=None,
            log_level=settings.log_level.lower(),
        )
    )

    coordinator_task = asyncio.create_task(coordinator.run(), name="coordinator")
    start_load_generator(coordinator, loop, window_seconds=window_seconds)
    server_task = asyncio.create_task(_serve_http(server), name="http-server")

    try:
        done, _ = await asyncio.wait(
            {coordinator_task, server_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if coordinator_task not in done:
            LOGGER.critical("HTTP server on port %s stopped unexpectedly", server.config.port)
            return 1
        try:
            final = coordinator_task.result()
        except PublishError as exc:
            LOGGER.critical("Failed to publish: %s", exc)
            return 1
        LOGGER.info("Instance %s exited after %s requests", final.name, final.request_count)
        return 0
    finally:
        # Abandon whatever is still running; in-flight requests are not drained.
        for sig in TERMINATION_SIGNALS:
            loop.remove_signal_handler(sig)
        for task in (coordinator_task, server_task):
            task.cancel()
        await asyncio.gather(coordinator_task, server_task, return_exceptions=True)


async def _serve_http(server: uvicorn.Server) -> None:
    try:
        await server.serve()
    except SystemExit as exc:
        # uvicorn exits the interpreter when it cannot bind.
        LOGGER.error("HTTP server failed to start (exit status %s)", exc.code)


def _hard_exit(code: int) -> NoReturn:
    """Leave immediately, abandoning in-flight requests and background threads."""

    logging.shutdown()
    os._exit(code)


async def _serve_and_exit(
    settings: Settings,
    publisher: Publisher,
    host: str | None,
    port: int | None,
) -> NoReturn:
    try:
        code = await run_instance(settings, publisher, host=host, port=port)
    finally:
        publisher.close()
    _hard_exit(code)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for the instance."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Interface to bind (defaults to HOST env variable or 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (defaults to PORT env variable or 8080)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        settings = get_settings()
    except ValidationError as exc:
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            LOGGER.critical("Invalid configuration for %s: %s", location, error["msg"])
        return 1

    try:
        publisher = PubSubPublisher.connect(settings.project_id, settings.topic_name)
    except PublisherConnectionError as exc:
        LOGGER.critical("%s", exc)
        return 1

    asyncio.run(_serve_and_exit(settings, publisher, args.host, args.port))
    return 1  # pragma: no cover - _serve_and_exit never returns


if __name__ == "__main__":
    raise SystemExit(main())
