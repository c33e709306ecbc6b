from datetime import datetime

import pytest
import requests

from config import Settings
from errors import ExternalServiceError, NotFound
from notification.services import NotificationService
from payment.gateway import MidtransClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def test_snap_request(monkeypatch):
    calls = {}

    def fake_post(url, **kwargs):
        calls["url"] = url
        calls.update(kwargs)
        return FakeResponse(201, {"token": "abc", "redirect_url": "https://pay"})

    monkeypatch.setattr(requests, "post", fake_post)
    client = MidtransClient("server-key", "client-key")
    assert client.create_transaction({"transaction_details": {"order_id": "o-1"}})["token"] == "abc"
    assert calls["url"] == MidtransClient.SANDBOX_SNAP_URL
    assert calls["auth"] == ("server-key", "")
    assert calls["timeout"] == 10


def test_production_urls():
    client = MidtransClient("k", "c", is_production=True)
    assert client.snap_url == "https://app.midtrans.com/snap/v1/transactions"
    assert client.api_url == "https://api.midtrans.com"


def test_snap_errors(monkeypatch):
    client = MidtransClient("server-key", "client-key")
    monkeypatch.setattr(requests, "post", lambda url, **kw: FakeResponse(401, text="unauthorized"))
    with pytest.raises(ExternalServiceError):
        client.create_transaction({})
    monkeypatch.setattr(requests, "post", lambda url, **kw: FakeResponse(200, {}))
    with pytest.raises(ExternalServiceError):
        client.create_transaction({})

    def timeout(url, **kw):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "post", timeout)
    with pytest.raises(ExternalServiceError):
        client.create_transaction({})


def test_unconfigured_gateway():
    with pytest.raises(ExternalServiceError):
        MidtransClient("", "").transaction_status("o-1")


def test_status_lookup(monkeypatch):
    client = MidtransClient("server-key", "client-key")
    seen = {}

    def fake_get(url, **kwargs):
        seen["url"] = url
        return FakeResponse(200, {"status_code": "200", "transaction_status": "settlement"})

    monkeypatch.setattr(requests, "get", fake_get)
    assert client.transaction_status("o-1")["transaction_status"] == "settlement"
    assert seen["url"] == "https://api.sandbox.midtrans.com/v2/o-1/status"

    monkeypatch.setattr(requests, "get", lambda url, **kw: FakeResponse(200, {"status_code": "404"}))
    with pytest.raises(NotFound):
        client.transaction_status("o-1")
    monkeypatch.setattr(requests, "get", lambda url, **kw: FakeResponse(200, None, text="<html>"))
    with pytest.raises(ExternalServiceError):
        client.transaction_status("o-1")


def test_from_settings():
    settings = Settings()
    settings.MIDTRANS_SERVER_KEY = "sk"
    settings.MIDTRANS_CLIENT_KEY = "ck"
    settings.GATEWAY_TIMEOUT_SECONDS = 3
    client = MidtransClient.from_settings(settings)
    assert (client.server_key, client.timeout) == ("sk", 3)


def test_unconfigured_providers_skip():
    service = NotificationService(email_api_key="", email_from="", whatsapp_url="", whatsapp_token="")
    assert service.send_email("a@example.com", "s", "t")["ok"] is False
    assert service.send_whatsapp_text("+62", "hi")["ok"] is False
    failures = service.send_purchase_notifications(
        "Budi", "a@example.com", "+62", "Monthly", datetime(2026, 1, 1), datetime(2026, 1, 31)
    )
    assert failures == 2


def test_purchase_notifications_sent(monkeypatch):
    posts = []

    def fake_post(url, **kwargs):
        posts.append((url, kwargs))
        return FakeResponse(200, {})

    monkeypatch.setattr(requests, "post", fake_post)
    service = NotificationService(email_api_key="re_key", email_from="gym@example.com", whatsapp_url="https://wa.example/send", whatsapp_token="tok")
    failures = service.send_purchase_notifications(
        "Budi", "a@example.com", "+62812", "Monthly", datetime(2026, 1, 1), datetime(2026, 1, 31)
    )
    assert failures == 0
    email_url, email_kwargs = posts[0]
    assert email_url == "https://api.resend.com/emails"
    assert "01 Jan 2026 - 31 Jan 2026" in email_kwargs["json"]["text"]
    wa_url, wa_kwargs = posts[1]
    assert wa_url == "https://wa.example/send"
    assert wa_kwargs["data"]["target"] == "+62812"
    assert wa_kwargs["headers"]["Authorization"] == "tok"


def test_dispatcher_logs_failures(dispatcher, caplog):
    def boom():
        raise RuntimeError("provider exploded")

    future = dispatcher.submit(boom)
    assert isinstance(future.exception(), RuntimeError)
    assert "Notification dispatch failed" in caplog.text
