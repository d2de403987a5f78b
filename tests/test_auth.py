from storefront import auth, schemas
from storefront.main import app

from .conftest import register


def test_register_and_profile(client):
    headers = register(client, "Jane@Example.com", name="Jane")
    res = client.get("/profile", headers=headers)
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "jane@example.com"
    assert body["role"] == "user"


def test_register_duplicate_email(client):
    register(client, "jane@example.com")
    res = client.post("/register", json={"email": "jane@example.com", "name": "Again", "password": "secret123"})
    assert res.status_code == 400


def test_admin_email_gets_admin_role_through_google(client, admin_headers):
    assert client.get("/profile", headers=admin_headers).json()["role"] == "admin"


def test_password_registration_never_grants_admin(client):
    headers = register(client, "admin@example.com", password="attacker1")
    assert client.get("/profile", headers=headers).json()["role"] == "user"
    assert client.get("/admin/dashboard", headers=headers).status_code == 403


def test_google_sign_in_promotes_admin_and_drops_password(client, monkeypatch):
    register(client, "admin@example.com", password="attacker1")

    async def fake_fetch(code):
        return schemas.GoogleProfile(sub="g-admin", email="admin@example.com", name="Admin", email_verified=True)

    monkeypatch.setattr(auth, "fetch_google_profile", fake_fetch)
    res = client.get("/auth/google/callback", params={"code": "abc"})
    headers = {"Authorization": f"Bearer {res.json()['access_token']}"}
    assert client.get("/profile", headers=headers).json()["role"] == "admin"

    login = client.post("/login", data={"username": "admin@example.com", "password": "attacker1"})
    assert login.status_code == 403


def test_google_unverified_email_rejected(client, monkeypatch):
    register(client, "jane@example.com")

    async def fake_fetch(code):
        return schemas.GoogleProfile(sub="g-3", email="jane@example.com", name="Mallory")

    monkeypatch.setattr(auth, "fetch_google_profile", fake_fetch)
    res = client.get("/auth/google/callback", params={"code": "abc"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Google account email is not verified"


def test_login(client):
    register(client, "jane@example.com", password="secret123")
    ok = client.post("/login", data={"username": "jane@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["token_type"] == "bearer"

    bad = client.post("/login", data={"username": "jane@example.com", "password": "wrong-one"})
    assert bad.status_code == 403


def test_invalid_token_rejected(client):
    res = client.get("/profile", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_non_admin_cannot_create_category(client, user_headers):
    res = client.post("/categories", json={"name": "Sculpture"}, headers=user_headers)
    assert res.status_code == 403


def test_google_login_not_configured(client):
    assert client.get("/auth/google/login").status_code == 503


def test_google_callback_creates_then_updates_user(client, monkeypatch):
    profiles = iter([
        schemas.GoogleProfile(sub="g-1", email="sam@example.com", name="Sam", picture="https://img/1.png",
                              email_verified=True),
        schemas.GoogleProfile(sub="g-1", email="sam@example.com", name="Samuel", picture="https://img/2.png",
                              email_verified=True),
    ])

    async def fake_fetch(code):
        return next(profiles)

    monkeypatch.setattr(auth, "fetch_google_profile", fake_fetch)

    first = client.get("/auth/google/callback", params={"code": "abc"})
    assert first.status_code == 200
    headers = {"Authorization": f"Bearer {first.json()['access_token']}"}
    assert client.get("/profile", headers=headers).json()["name"] == "Sam"

    second = client.get("/auth/google/callback", params={"code": "def"})
    assert second.status_code == 200
    profile = client.get("/profile", headers=headers).json()
    assert profile["name"] == "Samuel"
    assert profile["image"] == "https://img/2.png"


def test_oauth_user_cannot_password_login(client, monkeypatch):
    async def fake_fetch(code):
        return schemas.GoogleProfile(sub="g-2", email="oauth@example.com", name="OAuth", email_verified=True)

    monkeypatch.setattr(auth, "fetch_google_profile", fake_fetch)
    client.get("/auth/google/callback", params={"code": "abc"})
    res = client.post("/login", data={"username": "oauth@example.com", "password": "anything"})
    assert res.status_code == 403


def test_authorization_url_contains_client_settings(monkeypatch):
    monkeypatch.setattr(auth.settings, "GOOGLE_CLIENT_ID", "client-123")
    url = auth.google_authorization_url(state="xyz")
    assert url.startswith(auth.GOOGLE_AUTH_URL)
    assert "client_id=client-123" in url
    assert "state=xyz" in url
    assert app.title == "Storefront API"
