import pytest
import requests

from marketplace.services import email_client
from marketplace.services.email_client import EmailClient
from marketplace.services.notification_service import (
    send_quote_rejected_task,
    send_quote_submitted_task,
)

RFQ = {"id": 1, "rfq_number": "RFQ-20260117-042", "title": "Need 50 industrial valves"}
QUOTE = {"id": 7, "quote_number": "QT-20260118-913", "quote_price": "4200.00", "delivery_days": 10}


class FakeResponse:
    def __init__(self, status=200):
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")


@pytest.fixture
def posts(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return FakeResponse()

    monkeypatch.setattr(email_client.requests, "post", fake_post)
    return calls


def test_email_without_api_url_is_only_logged(posts):
    assert EmailClient(api_url="").send("buyer@example.com", "Hi", "<p>hi</p>") is False
    assert posts == []


def test_email_is_posted_with_bearer_token(posts):
    client = EmailClient(api_url="https://mail.example.com/send/", api_key="k3y", sender="rfq@example.com")

    assert client.send("buyer@example.com", "Hi", "<p>hi</p>") is True

    (call,) = posts
    assert call["url"] == "https://mail.example.com/send"
    assert call["headers"] == {"Authorization": "Bearer k3y"}
    assert call["json"]["to"] == ["buyer@example.com"]
    assert call["json"]["from"] == "rfq@example.com"


def test_email_retries_transient_errors(monkeypatch):
    attempts = []

    def flaky_post(url, json=None, headers=None, timeout=None):
        attempts.append(url)
        if len(attempts) < 2:
            raise requests.ConnectionError("reset")
        return FakeResponse()

    monkeypatch.setattr(email_client.requests, "post", flaky_post)

    assert EmailClient(api_url="https://mail.example.com").send("a@example.com", "s", "h") is True
    assert len(attempts) == 2


def test_email_gives_up_after_three_attempts(monkeypatch):
    attempts = []

    def broken_post(url, json=None, headers=None, timeout=None):
        attempts.append(url)
        return FakeResponse(503)

    monkeypatch.setattr(email_client.requests, "post", broken_post)

    with pytest.raises(requests.HTTPError):
        EmailClient(api_url="https://mail.example.com").send("a@example.com", "s", "h")
    assert len(attempts) == 3


def test_quote_submitted_task_emails_buyer(monkeypatch, posts):
    monkeypatch.setattr(email_client, "EMAIL_API_URL", "https://mail.example.com")

    result = send_quote_submitted_task({"id": 1, "name": "Buyer", "email": "buyer@example.com"}, RFQ, QUOTE)

    assert result == {"to": "buyer@example.com", "status": "sent"}
    assert "QT-20260118-913" in posts[0]["json"]["html"]
    assert posts[0]["json"]["subject"] == "New quote received for RFQ-20260117-042"


def test_rejected_task_skips_recipient_without_email(posts):
    assert send_quote_rejected_task({"id": 2}, RFQ, QUOTE, "Too slow") == {"status": "skipped"}

    result = send_quote_rejected_task({"id": 2, "email": "supplier@example.com"}, RFQ, QUOTE, "Too slow")
    assert result == {"to": "supplier@example.com", "status": "logged"}
