"""Tests for the instance state record and status derivation."""

from __future__ import annotations

import pytest

from hello_instance.errors import InvalidTransitionError
from hello_instance.publisher import encode_status
from hello_instance.state import (
    InstanceState,
    InstanceStatus,
    build_status_message,
    derive_status,
    generate_name,
)


@pytest.mark.parametrize(
    ("deleted", "active_requests", "expected"),
    [
        (False, 0, InstanceStatus.IDLE),
        (False, 1, InstanceStatus.PROCESSING),
        (False, 7, InstanceStatus.PROCESSING),
        (True, 0, InstanceStatus.KILLED),
        (True, 1, InstanceStatus.KILLED),
        (True, 7, InstanceStatus.KILLED),
    ],
)
def test_derive_status_combinations(
    deleted: bool, active_requests: int, expected: InstanceStatus
) -> None:
    assert derive_status(deleted, active_requests) is expected


def test_status_codes_match_wire_values() -> None:
    assert [status.value for status in InstanceStatus] == [0, 1, 2, 3]


def test_build_status_message_is_deterministic() -> None:
    state = InstanceState(name="brave-otter", request_count=4, active_requests=2, work_rate=310)
    first = build_status_message(state)
    second = build_status_message(state)
    assert first == second
    assert encode_status(first) == encode_status(second)
    assert first.instance_status is InstanceStatus.PROCESSING


def test_encode_status_uses_wire_field_names() -> None:
    state = InstanceState(name="brave-otter", request_count=3, work_rate=12)
    data = encode_status(build_status_message(state))
    assert data == (
        b'{"Name":"brave-otter","RequestCount":3,"InstanceStatus":1,"WorkRate":12}'
    )


def test_finish_without_start_is_rejected() -> None:
    state = InstanceState(name="brave-otter")
    with pytest.raises(InvalidTransitionError):
        state.finish_request()
    assert state.active_requests == 0
    assert state.request_count == 0


def test_deleted_state_rejects_mutation() -> None:
    state = InstanceState(name="brave-otter")
    state.mark_deleted()
    with pytest.raises(InvalidTransitionError):
        state.start_request()
    with pytest.raises(InvalidTransitionError):
        state.mark_deleted()
    assert state.deleted is True


def test_snapshot_is_detached_copy() -> None:
    state = InstanceState(name="brave-otter")
    snapshot = state.snapshot()
    state.start_request()
    assert snapshot.active_requests == 0
    assert state.active_requests == 1


def test_generate_name_returns_two_word_slug() -> None:
    name = generate_name()
    assert len(name.split("-")) >= 2
    assert name == name.lower()
