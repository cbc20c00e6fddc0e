from __future__ import annotations

import pytest
from pydantic import ValidationError

from schemas import Message


@pytest.mark.parametrize("length, ok", [(30, True), (31, False)])
def test_room_length_bound(length: int, ok: bool) -> None:
    if ok:
        assert Message(room="r" * length, username="alice", message="hi").room == "r" * length
    else:
        with pytest.raises(ValidationError):
            Message(room="r" * length, username="alice", message="hi")


@pytest.mark.parametrize("length, ok", [(20, True), (21, False)])
def test_username_length_bound(length: int, ok: bool) -> None:
    if ok:
        assert Message(room="lobby", username="u" * length, message="hi").username == "u" * length
    else:
        with pytest.raises(ValidationError):
            Message(room="lobby", username="u" * length, message="hi")


def test_message_body_is_unbounded() -> None:
    assert len(Message(room="lobby", username="alice", message="x" * 100_000).message) == 100_000


def test_message_is_frozen() -> None:
    msg = Message(room="lobby", username="alice", message="hi")
    with pytest.raises(ValidationError):
        msg.room = "other"


def test_serialized_field_names() -> None:
    msg = Message(room="lobby", username="alice", message="hi")
    assert msg.model_dump() == {"room": "lobby", "username": "alice", "message": "hi"}
