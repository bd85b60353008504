"""Synthetic CPU load reporting its throughput to the coordinator."""

from __future__ import annotations

import asyncio
import hashlib
import threading
import time
from collections.abc import Callable

from .coordinator import Coordinator
from .errors import CoordinatorClosedError
from .logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 2.0
HASH_INPUT = b"This is a random string"


def measure_window(
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Hash as fast as possible for one window.

    Args:
        window_seconds: Length of the measurement window.
        clock: Monotonic time source, checked once per iteration.

    Returns:
        Completed digests per millisecond, rounded down.
    """

    window_ms = int(window_seconds * 1000)
    if window_ms <= 0:
        raise ValueError("window_seconds must be at least one millisecond")
    deadline = clock() + window_seconds
    iterations = 0
    while clock() < deadline:
        hashlib.sha512(HASH_INPUT).hexdigest()
        iterations += 1
    return iterations // window_ms


def generate_load(
    report: Callable[[int], None],
    *,
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
    clock: Callable[[], float] = time.monotonic,
    stop_event: threading.Event | None = None,
) -> None:
    """Measure windows back to back, reporting each rate at the window boundary.

    Runs until ``stop_event`` is set; without one it never returns.
    """

    while stop_event is None or not stop_event.is_set():
        report(measure_window(window_seconds, clock=clock))


def start_load_generator(
    coordinator: Coordinator,
    loop: asyncio.AbstractEventLoop,
    *,
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
) -> threading.Thread:
    """Run the load generator on a daemon thread feeding ``coordinator``."""

    def report(rate: int) -> None:
        future = asyncio.run_coroutine_threadsafe(coordinator.report_work_rate(rate), loop)
        future.result()

    def target() -> None:
        try:
            generate_load(report, window_seconds=window_seconds)
        except CoordinatorClosedError:
            LOGGER.debug("Coordinator closed, load generator stopping")

    thread = threading.Thread(target=target, name="load-generator", daemon=True)
    thread.start()
    LOGGER.info("Load generator started with %.1fs windows", window_seconds)
    return thread


__all__ = [
    "DEFAULT_WINDOW_SECONDS",
    "HASH_INPUT",
    "generate_load",
    "measure_window",
    "start_load_generator",
]
