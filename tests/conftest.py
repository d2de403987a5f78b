import os
import tempfile
from pathlib import Path

_tmp = Path(tempfile.mkdtemp(prefix="storefront-tests-"))
DB_PATH = _tmp / "test.db"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["REDIS_URL"] = ""
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["MEDIA_ROOT"] = str(_tmp / "media")
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""

import pytest
from fastapi.testclient import TestClient

from storefront import auth, emails, schemas
from storefront.main import app
from storefront.ratelimit import contact_limiter


@pytest.fixture
def sent_emails(monkeypatch):
    outbox = []

    def fake_send(to, subject, html, reply_to=None, sender=None):
        outbox.append({"to": to, "subject": subject, "html": html, "reply_to": reply_to})
        return True, None

    monkeypatch.setattr(emails, "send_email", fake_send)
    return outbox


@pytest.fixture
def client(sent_emails):
    contact_limiter.reset()
    with TestClient(app) as c:
        yield c
    if DB_PATH.exists():
        DB_PATH.unlink()


def register(client, email, name="Test User", password="secret123"):
    res = client.post("/register", json={"email": email, "name": name, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, monkeypatch):
    async def admin_profile(code):
        return schemas.GoogleProfile(sub="g-admin", email="admin@example.com", name="Admin", email_verified=True)

    monkeypatch.setattr(auth, "fetch_google_profile", admin_profile)
    res = client.get("/auth/google/callback", params={"code": "admin"})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def user_headers(client):
    return register(client, "jane@example.com", name="Jane")


@pytest.fixture
def category(client, admin_headers):
    res = client.post("/categories", json={"name": "Paintings", "description": "Oil and acrylic"},
                      headers=admin_headers)
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture
def make_product(client, admin_headers, category):
    def _make(**overrides):
        payload = {
            "name": "Sunset",
            "description": "A **bright** sunset",
            "price": 100.0,
            "stock": 10,
            "category_id": category["id"],
            "images": ["https://cdn.example.com/sunset.jpg"],
            "colors": [{"name": "Gold", "hex": "#FFD700", "image": "https://cdn.example.com/sunset-gold.jpg"}],
        }
        payload.update(overrides)
        res = client.post("/products", json=payload, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()
    return _make
