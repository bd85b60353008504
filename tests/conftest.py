"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Callable
from typing import Any

import pytest

os.environ.setdefault("PROJECT_ID", "unit-test-project")
os.environ.setdefault("TOPIC_NAME", "unit-test-topic")

from hello_instance.errors import PublishError  # noqa: E402


class RecordingPublisher:
    """Publisher stub keeping decoded messages in memory."""

    def __init__(self, *, fail_on: int | None = None, delay: float = 0.0) -> None:
        self.messages: list[dict[str, Any]] = []
        self.published_at: list[float] = []
        self._delay = delay
        self.closed = False
        self._fail_on = fail_on
        self._attempts = 0

    async def publish(self, data: bytes) -> None:
        self._attempts += 1
        if self._fail_on is not None and self._attempts == self._fail_on:
            raise PublishError("topic unavailable")
        if self._delay:
            await asyncio.sleep(self._delay)
        self.messages.append(json.loads(data))
        self.published_at.append(asyncio.get_running_loop().time())

    def close(self) -> None:
        self.closed = True

    @property
    def statuses(self) -> list[int]:
        return [message["InstanceStatus"] for message in self.messages]


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll ``predicate`` on the running loop until it holds."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
