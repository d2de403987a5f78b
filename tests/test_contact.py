from kombu.exceptions import OperationalError

from storefront import emails, worker
from storefront.ratelimit import RateLimiter

MESSAGE = {
    "name": "Jane",
    "email": "jane@example.com",
    "subject": "Framing",
    "category": "orders",
    "message": "Do you frame prints?",
}


def test_contact_sends_to_support(client, sent_emails, monkeypatch):
    monkeypatch.setattr(emails.settings, "SUPPORT_EMAIL", "support@example.com")
    res = client.post("/contact", json=MESSAGE)
    assert res.status_code == 200
    mail = sent_emails[-1]
    assert mail["to"] == "support@example.com"
    assert mail["reply_to"] == "jane@example.com"
    assert mail["subject"] == "[Contact] Framing"


def test_contact_validation(client):
    assert client.post("/contact", json={**MESSAGE, "name": "J"}).status_code == 422
    assert client.post("/contact", json={**MESSAGE, "subject": "x" * 31}).status_code == 422
    assert client.post("/contact", json={**MESSAGE, "message": "hi"}).status_code == 422
    assert client.post("/contact", json={**MESSAGE, "email": "nope"}).status_code == 422


def test_contact_rate_limited(client):
    for _ in range(5):
        assert client.post("/contact", json=MESSAGE).status_code == 200
    assert client.post("/contact", json=MESSAGE).status_code == 429


def test_rate_limiter_window():
    limiter = RateLimiter(max_requests=2, window_seconds=10)
    assert limiter.hit("a", now=0)
    assert limiter.hit("a", now=1)
    assert not limiter.hit("a", now=2)
    assert limiter.hit("b", now=2)
    assert limiter.hit("a", now=10.5)


def test_contact_reports_broker_outage(client, sent_emails, monkeypatch):
    def broker_down(*args, **kwargs):
        raise OperationalError("broker down")

    monkeypatch.setattr(worker.send_contact_email, "delay", broker_down)
    res = client.post("/contact", json=MESSAGE)
    assert res.status_code == 503
    assert res.json()["detail"] == "Failed to send message. Please try again later."
    assert sent_emails == []


def test_rate_limiter_forgets_idle_clients():
    limiter = RateLimiter(max_requests=2, window_seconds=10)
    limiter.hit("a", now=0)
    limiter.hit("b", now=1)
    assert limiter.tracked_keys() == 2
    limiter.hit("c", now=20)
    assert limiter.tracked_keys() == 1
