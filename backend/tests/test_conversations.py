"""Tests for the conversation store and the /conversations endpoints."""
from datetime import timedelta

import pytest

from app.conversations.schemas import ConversationKind
from app.db import utcnow
from app.errors import InvalidRequest


class TestPublicConversation:
    """Tests for the singleton public conversation."""

    def test_created_once(self, conversations):
        first = conversations.get_or_create_public()
        second = conversations.get_or_create_public()

        assert first.id == second.id
        assert first.kind == ConversationKind.PUBLIC
        assert first.participantIds == []

    def test_found_by_fresh_store(self, db, conversations):
        from app.conversations.service import ConversationStore

        public = conversations.get_or_create_public()
        other = ConversationStore(db)

        assert other.get_or_create_public().id == public.id

    def test_visible_to_everyone(self, conversations):
        public = conversations.get_or_create_public()
        assert conversations.get_for_user(public.id, "anyone") is not None


class TestPrivateConversation:
    """Tests for get_or_create_private."""

    def test_creates_then_reuses(self, conversations):
        conv, created = conversations.get_or_create_private("alice", "bob")
        again, created_again = conversations.get_or_create_private("alice", "bob")

        assert created is True
        assert created_again is False
        assert again.id == conv.id
        assert sorted(conv.participantIds) == ["alice", "bob"]
        assert conv.kind == ConversationKind.PRIVATE

    def test_reversed_pair_finds_same_conversation(self, conversations):
        conv, _ = conversations.get_or_create_private("alice", "bob")
        reversed_conv, created = conversations.get_or_create_private("bob", "alice")

        assert created is False
        assert reversed_conv.id == conv.id

    def test_distinct_pairs_get_distinct_conversations(self, conversations):
        ab, _ = conversations.get_or_create_private("alice", "bob")
        ac, _ = conversations.get_or_create_private("alice", "carol")
        assert ab.id != ac.id

    def test_self_chat_rejected(self, conversations):
        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("alice", "alice")

    def test_empty_participant_rejected(self, conversations):
        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("alice", "")

    def test_public_room_name_rejected(self, conversations):
        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("mallory", "general")
        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("general", "mallory")

    def test_custom_public_room_name_rejected(self, db):
        from app.conversations.service import ConversationStore

        store = ConversationStore(db, public_room="lobby")

        with pytest.raises(InvalidRequest):
            store.get_or_create_private("mallory", "lobby")

    def test_conversation_id_rejected(self, conversations):
        conv, _ = conversations.get_or_create_private("alice", "bob")
        public = conversations.get_or_create_public()

        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("mallory", conv.id)
        with pytest.raises(InvalidRequest):
            conversations.get_or_create_private("mallory", public.id)
        assert [c.id for c in conversations.list_for_user("mallory")] == [public.id]

    def test_hidden_from_non_participants(self, conversations):
        conv, _ = conversations.get_or_create_private("alice", "bob")

        assert conversations.get_for_user(conv.id, "bob") is not None
        assert conversations.get_for_user(conv.id, "mallory") is None

    def test_unknown_id_is_missing(self, conversations):
        assert conversations.get("does-not-exist") is None
        assert conversations.get_for_user("does-not-exist", "alice") is None


class TestRecency:
    """Tests for last_message_at and list ordering."""

    def test_touch_never_moves_backwards(self, conversations):
        conv, _ = conversations.get_or_create_private("alice", "bob")
        later = utcnow() + timedelta(minutes=5)
        earlier = later - timedelta(minutes=10)

        conversations.touch_last_message_at(conv.id, later)
        conversations.touch_last_message_at(conv.id, earlier)

        assert conversations.get(conv.id).lastMessageAt == later

    def test_list_most_recent_first(self, conversations):
        public = conversations.get_or_create_public()
        old, _ = conversations.get_or_create_private("alice", "bob")
        new, _ = conversations.get_or_create_private("alice", "carol")
        conversations.get_or_create_private("bob", "carol")

        base = utcnow() + timedelta(minutes=1)
        conversations.touch_last_message_at(old.id, base + timedelta(seconds=2))
        conversations.touch_last_message_at(new.id, base + timedelta(seconds=1))
        conversations.touch_last_message_at(public.id, base + timedelta(seconds=3))

        listed = [c.id for c in conversations.list_for_user("alice")]

        assert listed == [public.id, old.id, new.id]

    def test_list_excludes_other_users_private_chats(self, conversations):
        conversations.get_or_create_public()
        conversations.get_or_create_private("bob", "carol")

        kinds = [c.kind for c in conversations.list_for_user("alice")]

        assert kinds == [ConversationKind.PUBLIC]


class TestConversationEndpoints:
    """Tests for the /conversations REST surface."""

    def test_requires_auth(self, api_client):
        response = api_client.get("/conversations")
        assert response.status_code == 401

    def test_start_conversation_created_then_existing(self, api_client, token_for):
        headers = {"Authorization": f"Bearer {token_for('alice')}"}

        first = api_client.post("/conversations", json={"receiverId": "bob"}, headers=headers)
        second = api_client.post("/conversations", json={"receiverId": "bob"}, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json()["id"] == second.json()["id"]
        assert sorted(first.json()["participantIds"]) == ["alice", "bob"]

    def test_start_conversation_from_other_side(self, api_client, token_for):
        created = api_client.post(
            "/conversations",
            json={"receiverId": "bob"},
            headers={"Authorization": f"Bearer {token_for('alice')}"},
        )
        reopened = api_client.post(
            "/conversations",
            json={"receiverId": "alice"},
            headers={"Authorization": f"Bearer {token_for('bob')}"},
        )

        assert reopened.status_code == 200
        assert reopened.json()["id"] == created.json()["id"]

    def test_start_conversation_with_self(self, api_client, token_for):
        response = api_client.post(
            "/conversations",
            json={"receiverId": "alice"},
            headers={"Authorization": f"Bearer {token_for('alice')}"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_start_conversation_without_receiver(self, api_client, token_for):
        response = api_client.post(
            "/conversations",
            json={},
            headers={"Authorization": f"Bearer {token_for('alice')}"},
        )
        assert response.status_code == 400

    def test_start_conversation_with_room_name(self, api_client, token_for):
        headers = {"Authorization": f"Bearer {token_for('mallory')}"}
        existing = api_client.post(
            "/conversations",
            json={"receiverId": "bob"},
            headers={"Authorization": f"Bearer {token_for('alice')}"},
        ).json()

        to_public = api_client.post("/conversations", json={"receiverId": "general"}, headers=headers)
        to_other_chat = api_client.post(
            "/conversations", json={"receiverId": existing["id"]}, headers=headers
        )

        assert to_public.status_code == 400
        assert to_other_chat.status_code == 400
        kinds = [c["kind"] for c in api_client.get("/conversations", headers=headers).json()]
        assert kinds == ["public"]

    def test_list_includes_public(self, api_client, token_for):
        headers = {"Authorization": f"Bearer {token_for('alice')}"}
        api_client.post("/conversations", json={"receiverId": "bob"}, headers=headers)

        kinds = sorted(c["kind"] for c in api_client.get("/conversations", headers=headers).json())

        assert kinds == ["private", "public"]

    def test_messages_hidden_from_outsiders(self, api_client, token_for):
        conv = api_client.post(
            "/conversations",
            json={"receiverId": "bob"},
            headers={"Authorization": f"Bearer {token_for('alice')}"},
        ).json()

        outsider = api_client.get(
            f"/conversations/{conv['id']}/messages",
            headers={"Authorization": f"Bearer {token_for('mallory')}"},
        )
        participant = api_client.get(
            f"/conversations/{conv['id']}/messages",
            headers={"Authorization": f"Bearer {token_for('bob')}"},
        )

        assert outsider.status_code == 404
        assert participant.status_code == 200
        assert participant.json() == []
