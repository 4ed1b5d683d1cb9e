"""Tests for reaction toggling."""

from fastapi import status

from parlor.models import ChatMessageReaction


def _react_url(room_id: int, message_id: int) -> str:
    return f"/api/v1/chat/rooms/{room_id}/messages/{message_id}/react"


def test_toggle_adds_then_removes(client, db_session, alice, alice_headers, room, post_messages) -> None:
    (message,) = post_messages(alice, 1)

    added = client.post(_react_url(room.id, message.id), json={"emoji": "🔥"}, headers=alice_headers)
    assert added.status_code == status.HTTP_200_OK
    assert added.json()["reactions"] == [{"emoji": "🔥", "count": 1, "reacted": True}]

    removed = client.post(_react_url(room.id, message.id), json={"emoji": "🔥"}, headers=alice_headers)
    assert removed.json()["reactions"] == []
    assert db_session.query(ChatMessageReaction).count() == 0


def test_reaction_summary_is_per_viewer(client, alice, alice_headers, bob_headers, room, post_messages) -> None:
    """Counts are shared, the reacted flag belongs to the requesting user."""
    (message,) = post_messages(alice, 1)
    client.post(_react_url(room.id, message.id), json={"emoji": "👍"}, headers=alice_headers)
    client.post(_react_url(room.id, message.id), json={"emoji": "👍"}, headers=bob_headers)
    client.post(_react_url(room.id, message.id), json={"emoji": "😂"}, headers=bob_headers)

    listed = client.get(f"/api/v1/chat/rooms/{room.id}/messages", headers=alice_headers).json()
    reactions = listed["messages"][0]["reactions"]

    assert reactions == [
        {"emoji": "👍", "count": 2, "reacted": True},
        {"emoji": "😂", "count": 1, "reacted": False},
    ]


def test_reaction_outside_palette_is_rejected(client, alice, alice_headers, room, post_messages) -> None:
    (message,) = post_messages(alice, 1)

    response = client.post(_react_url(room.id, message.id), json={"emoji": "🦄"}, headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "validation_error"


def test_reaction_to_message_in_another_room(client, alice, alice_headers, room, post_messages) -> None:
    (message,) = post_messages(alice, 1)

    response = client.post(_react_url(room.id + 1, message.id), json={"emoji": "👍"}, headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
