"""Single owner of the instance state.

Every mutation reaches the state as an event on one inbox. The coordinator
takes events one at a time, applies them, publishes when the event calls for
it and only then acknowledges the sender, so callers block until their event
has been handled.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

from .errors import CoordinatorClosedError, InvalidTransitionError
from .logging import get_logger, log_structured
from .metrics import ACTIVE_REQUESTS, REQUESTS_COMPLETED, STATUS_MESSAGES, WORK_RATE
from .publisher import Publisher, encode_status
from .state import InstanceState, build_status_message

LOGGER = get_logger(__name__)


class Phase(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    TERMINATING = "terminating"


class EventKind(str, Enum):
    TICK = "tick"
    REQUEST_STARTED = "request_started"
    REQUEST_FINISHED = "request_finished"
    WORK_RATE = "work_rate"
    TERMINATE = "terminate"


@dataclass(frozen=True, slots=True)
class Event:
    kind: EventKind
    rate: int = 0


class Coordinator:
    """Serializes ticks, request events, work-rate reports and termination."""

    def __init__(
        self,
        state: InstanceState,
        publisher: Publisher,
        *,
        message_interval: float | None = 1.0,
    ) -> None:
        """Initialize the coordinator.

        Args:
            state: Freshly created instance record; the coordinator takes ownership.
            publisher: Destination for status messages.
            message_interval: Seconds between periodic publishes. ``None``
                disables the ticker so ticks only arrive through :meth:`tick`.
        """
        if message_interval is not None and message_interval <= 0:
            raise ValueError("message_interval must be positive")
        self._state = state
        self._publisher = publisher
        self._interval = message_interval
        self._inbox: asyncio.Queue[tuple[Event, asyncio.Future[None]]] = asyncio.Queue()
        self._phase = Phase.STARTING
        self._termination: asyncio.Task[None] | None = None

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def name(self) -> str:
        return self._state.name

    def snapshot(self) -> InstanceState:
        return self._state.snapshot()

    async def run(self) -> InstanceState:
        """Publish the initial state and handle events until termination.

        Returns:
            A copy of the final state, after the terminal publish.

        Raises:
            PublishError: A status message could not be delivered.
        """
        ticker: asyncio.Task[None] | None = None
        try:
            await self._publish()
            self._phase = Phase.RUNNING
            if self._interval is not None:
                ticker = asyncio.create_task(self._tick_forever())
            while self._phase is Phase.RUNNING:
                event, ack = await self._inbox.get()
                try:
                    await self._handle(event)
                except InvalidTransitionError as exc:
                    LOGGER.warning("Rejected %s event: %s", event.kind.value, exc)
                    if not ack.done():
                        ack.set_exception(exc)
                except Exception as exc:
                    if not ack.done():
                        ack.set_exception(CoordinatorClosedError(f"coordinator stopped: {exc}"))
                    raise
                except BaseException:
                    if not ack.done():
                        ack.cancel()
                    raise
                else:
                    if not ack.done():
                        ack.set_result(None)
        finally:
            self._phase = Phase.TERMINATING
            if ticker is not None:
                ticker.cancel()
            self._reject_pending()
            if ticker is not None:
                await asyncio.gather(ticker, return_exceptions=True)
        return self.snapshot()

    async def tick(self) -> None:
        await self._send(Event(EventKind.TICK))

    async def request_started(self) -> None:
        await self._send(Event(EventKind.REQUEST_STARTED))

    async def request_finished(self) -> None:
        await self._send(Event(EventKind.REQUEST_FINISHED))

    async def report_work_rate(self, rate: int) -> None:
        await self._send(Event(EventKind.WORK_RATE, rate=rate))

    async def terminate(self) -> None:
        await self._send(Event(EventKind.TERMINATE))

    def request_termination(self) -> None:
        """Signal-handler entry point feeding a termination event into the inbox."""

        if self._phase is Phase.TERMINATING or self._termination is not None:
            return
        LOGGER.info("Termination requested for instance %s", self._state.name)
        self._termination = asyncio.get_running_loop().create_task(self.terminate())
        self._termination.add_done_callback(_log_termination_failure)

    async def _send(self, event: Event) -> None:
        if self._phase is Phase.TERMINATING:
            raise CoordinatorClosedError(f"coordinator closed, dropping {event.kind.value}")
        ack: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait((event, ack))
        await ack

    async def _handle(self, event: Event) -> None:
        state = self._state
        if event.kind is EventKind.TICK:
            await self._publish()
        elif event.kind is EventKind.REQUEST_STARTED:
            state.start_request()
            ACTIVE_REQUESTS.set(state.active_requests)
            await self._publish()
        elif event.kind is EventKind.REQUEST_FINISHED:
            state.finish_request()
            ACTIVE_REQUESTS.set(state.active_requests)
            REQUESTS_COMPLETED.inc()
        elif event.kind is EventKind.WORK_RATE:
            state.record_work_rate(event.rate)
            WORK_RATE.set(state.work_rate)
        elif event.kind is EventKind.TERMINATE:
            state.mark_deleted()
            self._phase = Phase.TERMINATING
            await self._publish()
            log_structured(
                LOGGER,
                "Exiting...",
                name=state.name,
                request_count=state.request_count,
                active_requests=state.active_requests,
                work_rate=state.work_rate,
            )

    async def _publish(self) -> None:
        message = build_status_message(self._state)
        data = encode_status(message)
        LOGGER.info("Publish: %s", data.decode("utf-8"))
        await self._publisher.publish(data)
        STATUS_MESSAGES.labels(status=message.instance_status.name).inc()

    async def _tick_forever(self) -> None:
        assert self._interval is not None
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            # Fixed cadence; ticks missed while a publish was slow are dropped.
            deadline += self._interval
            now = loop.time()
            if deadline < now:
                deadline += (now - deadline) // self._interval * self._interval
            await asyncio.sleep(max(0.0, deadline - now))
            try:
                await self.tick()
            except CoordinatorClosedError:
                return

    def _reject_pending(self) -> None:
        while not self._inbox.empty():
            event, ack = self._inbox.get_nowait()
            if not ack.done():
                ack.set_exception(
                    CoordinatorClosedError(f"coordinator closed before handling {event.kind.value}")
                )


def _log_termination_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None and not isinstance(exc, CoordinatorClosedError):
        LOGGER.error("Termination event failed: %s", exc)


__all__ = ["Coordinator", "Event", "EventKind", "Phase"]
