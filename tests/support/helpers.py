"""Small HTTP helpers shared by route tests."""

DEFAULT_PASSWORD = "correct-horse"


def register(test_client, email="listener@example.com", password=DEFAULT_PASSWORD):
    """Register through the API; returns ``(user, token)``."""
    resp = test_client.post("/api/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return body["user"], body["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
