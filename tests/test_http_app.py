# tests/test_http_app.py
"""Tests for the HTTP surface: health, metrics auth and the Telegram webhook"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.transport.http_app import app
from app.transport.security import TELEGRAM_SECRET_HEADER


def _update(text="hello", update_id=1):
    return {
        "update_id": update_id,
        "message": {
            "message_id": 10,
            "from": {"id": 555, "first_name": "Ali"},
            "chat": {"id": 555, "type": "private"},
            "text": text,
        },
    }


@pytest.fixture
def engine():
    mock_engine = MagicMock()
    mock_engine.process_inbound_message = AsyncMock(return_value={"step": "EMAIL", "user_id": "555"})
    app.state.engine = mock_engine
    yield mock_engine
    app.state.engine = None


@pytest.fixture
def client():
    return TestClient(app)


class TestHealth:
    def test_health_without_bot(self, client):
        app.state.engine = None
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "bot_enabled": False}
        assert "X-Request-ID" in resp.headers

    def test_health_with_bot(self, client, engine):
        assert client.get("/health").json()["bot_enabled"] is True

    def test_request_id_is_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


class TestMetricsEndpoint:
    def test_open_without_token(self, client):
        with patch.object(settings, "metrics_token", None), patch.object(settings, "enable_metrics", True):
            resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "counters" in resp.json()

    def test_requires_token(self, client):
        with patch.object(settings, "metrics_token", "tok"), patch.object(settings, "enable_metrics", True):
            assert client.get("/metrics").status_code == 401
            assert client.get("/metrics", headers={"Authorization": "Bearer nope"}).status_code == 403
            assert client.get("/metrics", headers={"Authorization": "Bearer tok"}).status_code == 200

    def test_disabled(self, client):
        with patch.object(settings, "enable_metrics", False):
            assert client.get("/metrics").status_code == 404


class TestTelegramWebhook:
    def test_processes_message(self, client, engine):
        with patch.object(settings, "telegram_webhook_secret", None):
            resp = client.post("/webhooks/telegram", json=_update("/start"))

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "processed": 1}
        message = engine.process_inbound_message.await_args.args[0]
        assert message.command == "start"
        assert message.user_id == "555"

    def test_rejects_bad_secret(self, client, engine):
        with patch.object(settings, "telegram_webhook_secret", "s3cret"):
            resp = client.post("/webhooks/telegram", json=_update(), headers={TELEGRAM_SECRET_HEADER: "wrong"})
            missing = client.post("/webhooks/telegram", json=_update())

        assert resp.status_code == 403
        assert missing.status_code == 403
        engine.process_inbound_message.assert_not_awaited()

    def test_accepts_good_secret(self, client, engine):
        with patch.object(settings, "telegram_webhook_secret", "s3cret"):
            resp = client.post("/webhooks/telegram", json=_update(), headers={TELEGRAM_SECRET_HEADER: "s3cret"})
        assert resp.status_code == 200

    def test_non_message_update_ignored(self, client, engine):
        with patch.object(settings, "telegram_webhook_secret", None):
            resp = client.post("/webhooks/telegram", json={"update_id": 2, "edited_message": {}})
        assert resp.json() == {"ok": True, "processed": 0}
        engine.process_inbound_message.assert_not_awaited()

    def test_invalid_json_acknowledged(self, client, engine):
        with patch.object(settings, "telegram_webhook_secret", None):
            resp = client.post(
                "/webhooks/telegram", content=b"{not json", headers={"Content-Type": "application/json"}
            )
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_bot_not_configured(self, client):
        app.state.engine = None
        with patch.object(settings, "telegram_webhook_secret", None):
            resp = client.post("/webhooks/telegram", json=_update())
        assert resp.status_code == 503
        assert resp.json() == {"error": "Bot is not configured"}
