"""Exception hierarchy for the instance."""

from __future__ import annotations


class HelloInstanceError(Exception):
    """Base exception for all instance errors."""


class PublisherConnectionError(HelloInstanceError):
    """Raised when the Pub/Sub client cannot be created at startup."""


class PublishError(HelloInstanceError):
    """Raised when a status message could not be delivered.

    Delivery failures are fatal: the coordinator stops and the process
    exits with status 1.
    """


class CoordinatorClosedError(HelloInstanceError):
    """Raised when an event is sent to a coordinator that is terminating."""


class InvalidTransitionError(HelloInstanceError):
    """Raised when an event would break an instance state invariant.

    Examples:
        - A request finishes while no request is in flight.
        - The state is mutated after the instance was marked deleted.
    """


__all__ = [
    "CoordinatorClosedError",
    "HelloInstanceError",
    "InvalidTransitionError",
    "PublishError",
    "PublisherConnectionError",
]
