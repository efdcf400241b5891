import json
from datetime import timedelta

from containers import container
from fakes import parse_sse
from helpers import run, sign_in_guest
from models import Visibility, utcnow

CHAT_ID = "5d1e6c1a-9b7f-4a8e-8c3d-2b1a0f9e8d7c"


async def _seed_chat(user_id, assistant_age_seconds=None, with_stream=True):
    chat = await container.chat_repo().create_chat(CHAT_ID, user_id, "Seeded", Visibility.PRIVATE)
    mr = container.message_repo()
    await mr.add_message(chat.id, "user", [{"type": "text", "text": "hi"}],
                         created_at=utcnow() - timedelta(seconds=60))
    if assistant_age_seconds is not None:
        await mr.add_message(chat.id, "assistant", [{"type": "text", "text": "hello!"}],
                             created_at=utcnow() - timedelta(seconds=assistant_age_seconds))
    if with_stream:
        await container.stream_repo().create_stream(chat.id)
    return chat


def test_resume_disabled_returns_204(make_client):
    client = make_client(stream_cache_ttl_seconds=None)
    sign_in_guest(client)

    resp = client.get(f"/api/chat/{CHAT_ID}/stream")

    assert resp.status_code == 204


def test_stale_assistant_message_gives_empty_stream(client):
    user = sign_in_guest(client)
    run(client, _seed_chat, user["id"], 20)

    resp = client.get(f"/api/chat/{CHAT_ID}/stream")

    assert resp.status_code == 200
    assert resp.content == b""


def test_recent_assistant_message_is_replayed(client):
    user = sign_in_guest(client)
    run(client, _seed_chat, user["id"], 2)

    resp = client.get(f"/api/chat/{CHAT_ID}/stream")

    events = parse_sse(resp.text)
    assert events[0]["type"] == "data-appendMessage"
    assert events[0]["transient"] is True
    message = json.loads(events[0]["data"])
    assert message["role"] == "assistant"
    assert message["chatId"] == CHAT_ID
    assert events[-1] == "[DONE]"


def test_last_message_from_user_gives_empty_stream(client):
    user = sign_in_guest(client)
    run(client, _seed_chat, user["id"], None)

    resp = client.get(f"/api/chat/{CHAT_ID}/stream")

    assert resp.status_code == 200
    assert resp.content == b""


def test_completed_generation_is_replayed_from_cache(client):
    sign_in_guest(client)
    body = {
        "id": CHAT_ID,
        "message": {"id": "m-1", "role": "user", "parts": [{"type": "text", "text": "hi"}]},
        "selectedChatModel": "chat-model",
        "selectedVisibilityType": "private",
    }
    original = parse_sse(client.post("/api/chat", json=body).text)

    replayed = parse_sse(client.get(f"/api/chat/{CHAT_ID}/stream").text)

    assert replayed == original


def test_resume_errors(client):
    user = sign_in_guest(client)
    assert client.get(f"/api/chat/{CHAT_ID}/stream").json()["code"] == "not_found:chat"

    run(client, _seed_chat, user["id"], None, False)
    assert client.get(f"/api/chat/{CHAT_ID}/stream").json()["code"] == "not_found:stream"
