"""Tests for the live message stream endpoint."""

import json
from contextlib import nullcontext

from fastapi import status

from parlor.api.v1.dependencies import get_session_factory
from parlor.api.v1.endpoints import rooms as rooms_endpoints


def _stream_url(room_id: int) -> str:
    return f"/api/v1/chat/rooms/{room_id}/messages/stream"


def test_stream_requires_auth(client, room) -> None:
    response = client.get(_stream_url(room.id))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_stream_for_inactive_room_is_not_found(client, alice_headers, inactive_room) -> None:
    response = client.get(_stream_url(inactive_room.id), headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_stream_for_unknown_room_is_not_found(client, alice_headers) -> None:
    response = client.get(_stream_url(31337), headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_stream_rejects_negative_after_id(client, alice_headers, room) -> None:
    response = client.get(_stream_url(room.id), params={"after_id": -1}, headers=alice_headers)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_stream_delivers_posted_message(client, app, db_session, alice_headers, room, mocker) -> None:
    """The stream acknowledges, pushes the new message, then closes when the room goes away."""
    posted = client.post(
        f"/api/v1/chat/rooms/{room.id}/messages",
        json={"message_text": "live hello"},
        headers=alice_headers,
    ).json()["message"]

    room_checks = iter([True, True])
    mocker.patch.object(
        rooms_endpoints,
        "store_room_check",
        return_value=lambda room_id: next(room_checks, False),
    )
    app.dependency_overrides[get_session_factory] = lambda: (lambda: nullcontext(db_session))
    try:
        with client.stream(
            "GET",
            _stream_url(room.id),
            params={"after_id": posted["id"] - 1},
            headers=alice_headers,
        ) as response:
            assert response.status_code == status.HTTP_200_OK
            assert response.headers["content-type"].startswith("text/event-stream")
            lines = list(response.iter_lines())
    finally:
        app.dependency_overrides.pop(get_session_factory, None)

    events = [json.loads(line[len("data: "):]) for line in lines if line.startswith("data: ")]
    assert [event["type"] for event in events] == ["connected", "message", "closed"]
    assert events[0]["last_id"] == posted["id"] - 1
    assert events[1]["message"]["id"] == posted["id"]
    assert events[1]["message"]["message_text"] == "live hello"
    assert events[2]["reason"] == "room_inactive"
