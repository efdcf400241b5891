from fastapi.testclient import TestClient


def run(client: TestClient, fn, *args):
    """Runs an async callable on the app's event loop."""
    return client.portal.call(fn, *args)


def sign_in_guest(client: TestClient) -> dict:
    resp = client.get("/api/auth/guest", follow_redirects=False)
    assert resp.status_code == 302
    return client.get("/api/auth/session").json()["user"]


def register(client: TestClient, email: str = "ada@example.com", password: str = "secret123") -> dict:
    resp = client.post("/api/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()
