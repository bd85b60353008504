"""Instance state record and the status message derived from it."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum

from coolname import generate_slug
from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidTransitionError


class InstanceStatus(IntEnum):
    """Status codes understood by consumers of the status topic."""

    UNKNOWN = 0
    IDLE = 1
    PROCESSING = 2
    KILLED = 3


@dataclass(slots=True)
class InstanceState:
    """Mutable instance record.

    Only the coordinator holds a reference to the live record; everyone else
    works with copies returned by :meth:`snapshot`.
    """

    name: str
    request_count: int = 0
    active_requests: int = 0
    deleted: bool = False
    work_rate: int = 0

    def start_request(self) -> None:
        self._ensure_alive()
        self.active_requests += 1

    def finish_request(self) -> None:
        self._ensure_alive()
        if self.active_requests <= 0:
            raise InvalidTransitionError("request finished without a matching start")
        self.request_count += 1
        self.active_requests -= 1

    def record_work_rate(self, rate: int) -> None:
        self._ensure_alive()
        self.work_rate = int(rate)

    def mark_deleted(self) -> None:
        self._ensure_alive()
        self.deleted = True

    def snapshot(self) -> InstanceState:
        return replace(self)

    def _ensure_alive(self) -> None:
        if self.deleted:
            raise InvalidTransitionError(f"instance {self.name} is already deleted")


class StatusMessage(BaseModel):
    """Wire representation of an instance status."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name")
    request_count: int = Field(alias="RequestCount", ge=0)
    instance_status: InstanceStatus = Field(alias="InstanceStatus")
    work_rate: int = Field(alias="WorkRate")


def derive_status(deleted: bool, active_requests: int) -> InstanceStatus:
    """Map the activity fields of a state onto a status code."""

    if deleted:
        return InstanceStatus.KILLED
    if active_requests > 0:
        return InstanceStatus.PROCESSING
    return InstanceStatus.IDLE


def build_status_message(state: InstanceState) -> StatusMessage:
    return StatusMessage(
        name=state.name,
        request_count=state.request_count,
        instance_status=derive_status(state.deleted, state.active_requests),
        work_rate=state.work_rate,
    )


def generate_name() -> str:
    """Return a random two-word instance name such as ``stirring-wildcat``."""

    return generate_slug(2)


__all__ = [
    "InstanceState",
    "InstanceStatus",
    "StatusMessage",
    "build_status_message",
    "derive_status",
    "generate_name",
]
