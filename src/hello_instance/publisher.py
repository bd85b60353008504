"""Delivery of status messages to a Google Cloud Pub/Sub topic."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import pubsub_v1

from .errors import PublishError, PublisherConnectionError
from .logging import get_logger
from .state import StatusMessage

LOGGER = get_logger(__name__)

DEFAULT_PUBLISH_TIMEOUT = 60.0


class Publisher(Protocol):
    async def publish(self, data: bytes) -> None:
        """Deliver one encoded status message, raising PublishError on failure."""

    def close(self) -> None:
        """Release the underlying client."""


def encode_status(message: StatusMessage) -> bytes:
    """Serialize a status message to compact JSON using the wire field names."""

    return message.model_dump_json(by_alias=True).encode("utf-8")


class PubSubPublisher:
    """Thin wrapper around the Pub/Sub publisher client."""

    def __init__(
        self,
        client: Any,
        topic_path: str,
        *,
        timeout_seconds: float = DEFAULT_PUBLISH_TIMEOUT,
    ) -> None:
        self._client = client
        self.topic_path = topic_path
        self._timeout = timeout_seconds

    @classmethod
    def connect(
        cls,
        project_id: str,
        topic_name: str,
        *,
        timeout_seconds: float = DEFAULT_PUBLISH_TIMEOUT,
    ) -> "PubSubPublisher":
        """Create a client for ``projects/<project_id>/topics/<topic_name>``."""

        try:
            client = pubsub_v1.PublisherClient()
        except (GoogleAuthError, GoogleAPIError) as exc:
            raise PublisherConnectionError(f"Could not create pubsub client: {exc}") from exc
        topic_path = client.topic_path(project_id, topic_name)
        LOGGER.info("Publishing status to %s", topic_path)
        return cls(client, topic_path, timeout_seconds=timeout_seconds)

    async def publish(self, data: bytes) -> None:
        """Publish and wait for the server acknowledgement without blocking the loop."""

        try:
            future = self._client.publish(self.topic_path, data)
            await asyncio.to_thread(future.result, timeout=self._timeout)
        except (GoogleAPIError, TimeoutError, ValueError) as exc:
            raise PublishError(f"Failed to publish to {self.topic_path}: {exc}") from exc

    def close(self) -> None:
        self._client.stop()


__all__ = ["DEFAULT_PUBLISH_TIMEOUT", "PubSubPublisher", "Publisher", "encode_status"]
