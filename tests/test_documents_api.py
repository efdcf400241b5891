from datetime import datetime, timedelta, timezone

import pytest

from endpoints.api_documents import parse_timestamp
from errors import ChatError
from helpers import register, sign_in_guest


def save(client, doc_id, content, title="Notes", kind="text"):
    resp = client.post("/api/document", params={"id": doc_id},
                       json={"title": title, "content": content, "kind": kind})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_revisions_are_appended_and_listed_oldest_first(client):
    sign_in_guest(client)
    save(client, "doc1", "first draft")
    save(client, "doc1", "second draft")

    revisions = client.get("/api/document", params={"id": "doc1"}).json()

    assert [r["content"] for r in revisions] == ["first draft", "second draft"]
    assert {r["id"] for r in revisions} == {"doc1"}


def test_delete_with_no_later_revisions_deletes_nothing(client):
    sign_in_guest(client)
    save(client, "doc1", "only draft")
    later = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()

    resp = client.delete("/api/document", params={"id": "doc1", "timestamp": later})

    assert resp.json() == {"id": "doc1", "deleted": False}
    assert len(client.get("/api/document", params={"id": "doc1"}).json()) == 1


def test_delete_removes_revisions_after_timestamp(client):
    sign_in_guest(client)
    first = save(client, "doc1", "first draft")
    save(client, "doc1", "second draft")

    resp = client.delete("/api/document", params={"id": "doc1", "timestamp": first["createdAt"]})

    assert resp.json() == {"id": "doc1", "deleted": True}
    revisions = client.get("/api/document", params={"id": "doc1"}).json()
    assert [r["content"] for r in revisions] == ["first draft"]


def test_internal_id_resolves_to_document(client):
    sign_in_guest(client)
    saved = save(client, "doc1", "draft")

    revisions = client.get("/api/document", params={"id": saved["internalId"]}).json()

    assert revisions[0]["id"] == "doc1"


def test_document_errors(make_client):
    client = make_client()
    assert client.get("/api/document", params={"id": "doc1"}).json()["code"] == "unauthorized:document"

    sign_in_guest(client)
    assert client.get("/api/document").json()["code"] == "bad_request:api"
    assert client.get("/api/document", params={"id": "missing"}).json()["code"] == "not_found:document"
    assert client.delete("/api/document", params={"id": "doc1"}).json()["code"] == "bad_request:api"
    save(client, "doc1", "mine")

    other = make_client()
    register(other, "eve@example.com")
    resp = other.get("/api/document", params={"id": "doc1"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden:document"


def test_parse_timestamp_accepts_iso_and_epoch_millis():
    expected = datetime(2024, 5, 1, 12, 0, 0)
    assert parse_timestamp("2024-05-01T12:00:00Z") == expected
    assert parse_timestamp("2024-05-01T14:00:00+02:00") == expected
    assert parse_timestamp(str(int(expected.replace(tzinfo=timezone.utc).timestamp() * 1000))) == expected
    with pytest.raises(ChatError):
        parse_timestamp("yesterday")
