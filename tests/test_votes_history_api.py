from datetime import datetime, timedelta

from containers import container
from helpers import run, sign_in_guest
from models import Chat, Visibility

CHAT_ID = "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d"
MESSAGE_ID = "0123456789abcdef0123456789abcdef"


async def _seed_chats(user_id, count):
    base = datetime(2024, 1, 1)
    async with container.session_factory()() as session:
        for i in range(count):
            session.add(Chat(
                external_id=f"chat-{i}",
                user_id=user_id,
                title=f"Chat {i}",
                visibility=Visibility.PRIVATE,
                created_at=base + timedelta(minutes=i),
            ))
        await session.commit()


def test_voting_twice_keeps_one_vote(client):
    user = sign_in_guest(client)
    run(client, container.chat_repo().create_chat, CHAT_ID, user["id"], "Votes")

    client.patch("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "type": "up"})
    client.patch("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "type": "down"})

    votes = client.get("/api/vote", params={"chatId": CHAT_ID}).json()
    assert votes == [{"chatId": CHAT_ID, "messageId": MESSAGE_ID, "isUpvoted": False}]


def test_post_vote_upserts(client):
    user = sign_in_guest(client)
    run(client, container.chat_repo().create_chat, CHAT_ID, user["id"], "Votes")

    client.post("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "isUpvoted": False})
    resp = client.post("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "isUpvoted": True})

    assert resp.json()["isUpvoted"] is True
    assert len(client.get("/api/vote", params={"chatId": CHAT_ID}).json()) == 1


def test_vote_errors(client):
    assert client.get("/api/vote", params={"chatId": CHAT_ID}).json()["code"] == "unauthorized:vote"
    sign_in_guest(client)
    assert client.get("/api/vote").json()["code"] == "bad_request:api"
    resp = client.patch("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "type": "up"})
    assert resp.json()["code"] == "not_found:vote"
    resp = client.patch("/api/vote", json={"chatId": CHAT_ID, "messageId": MESSAGE_ID, "type": "sideways"})
    assert resp.json()["code"] == "bad_request:api"


def test_history_returns_newest_first_with_has_more(client):
    user = sign_in_guest(client)
    run(client, _seed_chats, user["id"], 5)

    page = client.get("/api/history", params={"limit": 2}).json()

    assert [c["id"] for c in page["chats"]] == ["chat-4", "chat-3"]
    assert page["hasMore"] is True


def test_history_cursors(client):
    user = sign_in_guest(client)
    run(client, _seed_chats, user["id"], 5)

    older = client.get("/api/history", params={"limit": 2, "starting_after": "chat-3"}).json()
    assert [c["id"] for c in older["chats"]] == ["chat-2", "chat-1"]
    assert older["hasMore"] is True

    last = client.get("/api/history", params={"limit": 2, "starting_after": "chat-1"}).json()
    assert [c["id"] for c in last["chats"]] == ["chat-0"]
    assert last["hasMore"] is False

    newer = client.get("/api/history", params={"limit": 10, "ending_before": "chat-2"}).json()
    assert [c["id"] for c in newer["chats"]] == ["chat-4", "chat-3"]


def test_history_rejects_both_cursors(client):
    sign_in_guest(client)
    resp = client.get("/api/history", params={"starting_after": "a", "ending_before": "b"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "bad_request:api"


def test_history_requires_session(client):
    assert client.get("/api/history").status_code == 401
