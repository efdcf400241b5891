from config import FeatureFlags
from endpoints.utils import COOKIE_NAME
from helpers import register, sign_in_guest

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_upload_and_fetch_signed_url(client):
    sign_in_guest(client)

    resp = client.post("/api/files/upload", files={"file": ("cat.png", PNG, "image/png")})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["name"] == body["pathname"] == "cat.png"
    assert body["contentType"] == "image/png"
    assert body["size"] == len(PNG)
    assert body["maxSize"] == 7 * 1024 * 1024

    fetched = client.get(body["url"])
    assert fetched.status_code == 200
    assert fetched.content == PNG


def test_upload_rejects_bad_type_and_missing_file(client):
    sign_in_guest(client)

    resp = client.post("/api/files/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_failed"

    resp = client.post("/api/files/upload", data={"other": "x"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "no_file"


def test_upload_disabled_by_flag(make_client):
    client = make_client(flags=FeatureFlags(guest_accounts=True, upload_files=False))
    sign_in_guest(client)

    resp = client.post("/api/files/upload", files={"file": ("cat.png", PNG, "image/png")})

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden:feature"


def test_tampered_file_signature_is_rejected(client):
    sign_in_guest(client)
    url = client.post("/api/files/upload", files={"file": ("cat.png", PNG, "image/png")}).json()["url"]

    assert client.get(url[:-4] + "0000").status_code == 403


def test_guest_sign_in_sets_cookie_and_redirects(client):
    resp = client.get("/api/auth/guest", params={"redirectUrl": "/chat/abc"}, follow_redirects=False)

    assert resp.status_code == 302
    assert resp.headers["location"] == "/chat/abc"
    assert COOKIE_NAME in resp.cookies
    user = client.get("/api/auth/session").json()["user"]
    assert user["type"] == "guest"
    assert user["email"].endswith("@guest.local")


def test_signed_in_guest_request_redirects_home(client):
    sign_in_guest(client)
    resp = client.get("/api/auth/guest", params={"redirectUrl": "/chat/abc"}, follow_redirects=False)
    assert resp.headers["location"] == "/"


def test_guest_accounts_disabled(make_client):
    client = make_client(flags=FeatureFlags())

    resp = client.get("/api/auth/guest", follow_redirects=False)

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden:auth"


def test_register_login_logout(client):
    user = register(client, "Ada@Example.com", "secret123")
    assert user["email"] == "ada@example.com"
    assert user["type"] == "regular"

    client.post("/api/auth/logout")
    client.cookies.clear()
    assert client.get("/api/auth/session").json() == {"user": None}

    bad = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401

    good = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret123"})
    assert good.status_code == 200
    assert client.get("/api/auth/session").json()["user"]["id"] == user["id"]


def test_duplicate_registration_is_rejected(client):
    register(client, "bob@example.com")
    resp = client.post("/api/auth/register", json={"email": "bob@example.com", "password": "another1"})
    assert resp.status_code == 400


def test_forged_session_cookie_is_ignored(client):
    client.cookies.set(COOKIE_NAME, "0123456789abcdef0123456789abcdef.9999999999.deadbeef")
    assert client.get("/api/auth/session").json() == {"user": None}


def test_newsletter_double_opt_in(client, caplog):
    caplog.set_level("INFO")
    assert client.post("/api/newsletter/subscribe", json={"email": "Reader@Example.com"}).json() == {
        "status": "pending_confirmation",
    }
    token = next(
        r.getMessage().split("token=")[1].split()[0]
        for r in caplog.records if "confirm?token=" in r.getMessage()
    )

    assert client.get("/api/newsletter/confirm", params={"token": token}).status_code == 200
    assert client.post("/api/newsletter/subscribe", json={"email": "reader@example.com"}).json() == {
        "status": "already_confirmed",
    }
    assert client.get("/api/newsletter/unsubscribe", params={"token": token}).text == "You have been unsubscribed."
    assert client.get("/api/newsletter/confirm", params={"token": token}).status_code == 400
    assert client.get("/api/newsletter/confirm").status_code == 400
