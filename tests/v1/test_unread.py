"""Tests for read markers and unread mention counts."""

from datetime import timedelta

from fastapi import status

from parlor.db.time import utcnow
from parlor.models import ChatRoom, ChatRoomRead, Notification


def _mention(client, headers, room_id: int, text: str = "@bob ping") -> None:
    response = client.post(
        f"/api/v1/chat/rooms/{room_id}/messages",
        json={"message_text": text},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED


def _unread(client, headers) -> dict[str, int]:
    response = client.get("/api/v1/chat/mentions/unread", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    return response.json()["by_room"]


def test_mentions_count_until_room_is_read(client, alice_headers, bob, bob_headers, room) -> None:
    """Two mentions count, marking read clears them, a later mention counts again."""
    _mention(client, alice_headers, room.id)
    _mention(client, alice_headers, room.id, "@bob again")
    assert _unread(client, bob_headers) == {str(room.id): 2}

    marked = client.post(f"/api/v1/chat/rooms/{room.id}/read", headers=bob_headers)
    assert marked.status_code == status.HTTP_200_OK
    assert marked.json()["ok"] is True
    assert _unread(client, bob_headers) == {str(room.id): 0}

    _mention(client, alice_headers, room.id, "@bob one more")
    assert _unread(client, bob_headers) == {str(room.id): 1}


def test_unread_lists_every_active_room(client, db_session, bob, bob_headers, room, inactive_room) -> None:
    other = ChatRoom(name="Crypto")
    db_session.add(other)
    db_session.flush()

    assert _unread(client, bob_headers) == {str(room.id): 0, str(other.id): 0}


def test_mark_read_twice_keeps_one_marker(client, db_session, bob, bob_headers, room) -> None:
    client.post(f"/api/v1/chat/rooms/{room.id}/read", headers=bob_headers)
    client.post(f"/api/v1/chat/rooms/{room.id}/read", headers=bob_headers)

    assert db_session.query(ChatRoomRead).filter_by(user_email=bob.email).count() == 1


def test_mark_unknown_room_read(client, bob_headers) -> None:
    response = client.post("/api/v1/chat/rooms/4242/read", headers=bob_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_legacy_link_only_notifications_are_counted(client, db_session, bob, bob_headers, room) -> None:
    """Rows without typed targets fall back to the room encoded in the link."""
    db_session.add_all(
        [
            Notification(
                title="old mention",
                kind="chat_mention",
                link=f"/chat?room={room.id}",
                user_email=bob.email,
            ),
            Notification(
                title="unparseable",
                kind="chat_mention",
                link="/somewhere-else",
                user_email=bob.email,
            ),
            Notification(
                title="dm",
                kind="dm",
                link=f"/chat?room={room.id}",
                user_email=bob.email,
            ),
        ]
    )
    db_session.flush()

    assert _unread(client, bob_headers) == {str(room.id): 1}


def test_notifications_older_than_marker_are_read(client, db_session, bob, bob_headers, room) -> None:
    now = utcnow()
    db_session.add(ChatRoomRead(user_email=bob.email, room_id=room.id, last_read_at=now))
    db_session.add_all(
        [
            Notification(
                title="before",
                kind="chat_mention",
                target_type="room",
                target_id=room.id,
                user_email=bob.email,
                created_at=now - timedelta(minutes=5),
            ),
            Notification(
                title="after",
                kind="chat_mention",
                target_type="room",
                target_id=room.id,
                user_email=bob.email,
                created_at=now + timedelta(minutes=5),
            ),
        ]
    )
    db_session.flush()

    assert _unread(client, bob_headers) == {str(room.id): 1}
