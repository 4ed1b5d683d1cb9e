"""Tests for direct conversations."""

from fastapi import status
from sqlalchemy.exc import OperationalError

from parlor.models import DirectConversation, DirectMessage, Notification

DMS = "/api/v1/chat/dms"


def test_conversation_is_canonical_for_the_pair(client, db_session, alice, bob, alice_headers, bob_headers) -> None:
    """Both sides and repeated calls resolve to the same conversation."""
    first = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers)
    assert first.status_code == status.HTTP_200_OK
    body = first.json()
    assert body["other_user"] == {"email": bob.email, "username": "bob"}
    assert body["messages"] == []

    again = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()
    reverse = client.get(f"{DMS}/with/{alice.email}", headers=bob_headers).json()

    assert again["dm_id"] == body["dm_id"] == reverse["dm_id"]
    assert db_session.query(DirectConversation).count() == 1


def test_conversation_with_self_is_rejected(client, alice, alice_headers) -> None:
    response = client.get(f"{DMS}/with/{alice.email}", headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_conversation_with_unknown_email_uses_fallback_name(client, alice_headers) -> None:
    body = client.get(f"{DMS}/with/ghost@example.com", headers=alice_headers).json()

    assert body["other_user"] == {"email": "ghost@example.com", "username": "ghost"}


def test_send_message_notifies_recipient(client, db_session, alice, bob, alice_headers, bob_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]

    response = client.post(
        f"{DMS}/{dm_id}/messages",
        json={"message_text": "  hey bob  "},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    message = response.json()["message"]
    assert message["message_text"] == "hey bob"
    assert message["sender_email"] == alice.email
    assert message["username"] == "alice"

    notification = db_session.query(Notification).one()
    assert notification.user_email == bob.email
    assert notification.kind == "dm"
    assert notification.title == "alice sent you a message"
    assert notification.description == "hey bob"
    assert notification.link == f"/chat?dm={dm_id}"

    history = client.get(f"{DMS}/{dm_id}/messages", headers=bob_headers).json()["messages"]
    assert [item["message_text"] for item in history] == ["hey bob"]


def test_long_message_preview_is_truncated(client, db_session, bob, alice_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]

    client.post(f"{DMS}/{dm_id}/messages", json={"message_text": "x" * 120}, headers=alice_headers)

    assert db_session.query(Notification).one().description == "x" * 80 + "..."


def test_send_empty_message_is_rejected(client, bob, alice_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]

    response = client.post(f"{DMS}/{dm_id}/messages", json={"message_text": "   "}, headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Message text required"


def test_outsider_cannot_read_or_write(client, bob, moderator, alice_headers, auth_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]
    outsider = auth_headers(moderator)

    assert client.get(f"{DMS}/{dm_id}", headers=outsider).status_code == status.HTTP_403_FORBIDDEN
    assert client.get(f"{DMS}/{dm_id}/messages", headers=outsider).status_code == status.HTTP_403_FORBIDDEN
    response = client.post(f"{DMS}/{dm_id}/messages", json={"message_text": "hi"}, headers=outsider)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_conversation_is_not_found(client, alice_headers) -> None:
    assert client.get(f"{DMS}/777", headers=alice_headers).status_code == status.HTTP_404_NOT_FOUND


def test_get_conversation_info(client, alice, bob, alice_headers, bob_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]

    body = client.get(f"{DMS}/{dm_id}", headers=bob_headers).json()

    assert body == {"dm_id": dm_id, "other_user": {"email": alice.email, "username": "alice"}}


def test_list_conversations_by_latest_activity(client, alice, bob, moderator, alice_headers) -> None:
    """Most recently active first; conversations without messages last."""
    with_bob = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]
    with_mod = client.get(f"{DMS}/with/{moderator.email}", headers=alice_headers).json()["dm_id"]
    empty = client.get(f"{DMS}/with/ghost@example.com", headers=alice_headers).json()["dm_id"]

    client.post(f"{DMS}/{with_bob}/messages", json={"message_text": "first"}, headers=alice_headers)
    client.post(f"{DMS}/{with_mod}/messages", json={"message_text": "second"}, headers=alice_headers)
    client.post(f"{DMS}/{with_bob}/messages", json={"message_text": "third"}, headers=alice_headers)

    conversations = client.get(DMS, headers=alice_headers).json()["conversations"]

    assert [item["dm_id"] for item in conversations] == [with_bob, with_mod, empty]
    assert conversations[0]["last_message"]["message_text"] == "third"
    assert conversations[0]["other_user"]["username"] == "bob"
    assert conversations[2]["last_message"] is None


def test_send_message_of_only_markup_is_rejected(client, db_session, bob, alice_headers) -> None:
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]

    response = client.post(
        f"{DMS}/{dm_id}/messages",
        json={"message_text": "<script>a</script> <script>b</script>"},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert db_session.query(DirectMessage).count() == 0
    assert db_session.query(Notification).count() == 0


def test_send_succeeds_when_notification_fails(client, db_session, bob, alice_headers, mocker) -> None:
    """A failing notification write does not undo or fail the message."""
    dm_id = client.get(f"{DMS}/with/{bob.email}", headers=alice_headers).json()["dm_id"]
    real_commit = db_session.commit

    def fail_notification_commit() -> None:
        if any(isinstance(obj, Notification) for obj in db_session.new):
            raise OperationalError("INSERT INTO notification", {}, Exception("database is locked"))
        real_commit()

    mocker.patch.object(db_session, "commit", side_effect=fail_notification_commit)

    response = client.post(f"{DMS}/{dm_id}/messages", json={"message_text": "still here"}, headers=alice_headers)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["message"]["message_text"] == "still here"
    assert db_session.query(DirectMessage).filter_by(dm_id=dm_id).count() == 1
    assert db_session.query(Notification).count() == 0
