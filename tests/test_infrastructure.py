# tests/test_infrastructure.py
"""Tests for metrics, logging, configuration and the polling loop"""
import asyncio
import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import Settings, warn_on_risky_config
from app.infra.logging_config import ConsoleFormatter, JSONFormatter, LogContext, mask_id
from app.infra.metrics import AppMetrics, MetricsCollector, Timer, get_metrics_collector
from app.transport.telegram_polling import TelegramPoller
from app.transport.telegram_sender import TelegramSendError


class TestMetrics:
    def test_metrics_counter_increment(self):
        collector = MetricsCollector()
        collector.inc_counter("signups")
        collector.inc_counter("signups", amount=2)
        assert collector.get_counter("signups") == 3
        assert collector.get_metrics()["counters"]["signups"] == 3

    def test_metrics_histogram_observe(self):
        collector = MetricsCollector()
        for value in (0.1, 0.2, 0.3, 0.4):
            collector.observe_histogram("latency", value)
        stats = collector.get_metrics()["histograms"]["latency"]
        assert stats["count"] == 4
        assert stats["min"] == pytest.approx(0.1)
        assert stats["max"] == pytest.approx(0.4)

    def test_metrics_with_labels(self):
        collector = MetricsCollector()
        collector.inc_counter("uploads", labels={"result": "stored"})
        collector.inc_counter("uploads", labels={"result": "fallback"})
        assert collector.get_counter("uploads", result="stored") == 1
        assert "uploads{result=fallback}" in collector.get_metrics()["counters"]

    def test_reset(self):
        collector = MetricsCollector()
        collector.inc_counter("x")
        collector.reset()
        assert collector.get_metrics() == {"counters": {}, "histograms": {}}

    def test_app_metrics(self):
        collector = get_metrics_collector()
        before = collector.get_counter("profile_image_uploads_total", result="fallback")
        AppMetrics.upload_finished(False)
        assert collector.get_counter("profile_image_uploads_total", result="fallback") == before + 1

    def test_timer_records_duration(self):
        collector = get_metrics_collector()
        with Timer("test_timer_seconds", kind="unit"):
            pass
        stats = collector.get_metrics()["histograms"]["test_timer_seconds{kind=unit}"]
        assert stats["count"] >= 1


class TestLogging:
    def _record(self, **extra):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_mask_id(self):
        assert mask_id("998901234567") == "9989****67"
        assert mask_id("12345") == "12345"

    def test_json_formatter_includes_context(self):
        line = JSONFormatter().format(self._record(user_id="1001", step="EMAIL"))
        payload = json.loads(line)
        assert payload["message"] == "hello world"
        assert payload["step"] == "EMAIL"
        assert payload["level"] == "INFO"

    def test_console_formatter_masks_ids(self):
        line = ConsoleFormatter().format(self._record(user_id="998901234567"))
        assert "998901234567" not in line
        assert "hello world" in line

    def test_log_context_bind(self, caplog):
        logger = logging.getLogger("app.test.context")
        ctx = LogContext(logger, user_id="1001").bind(step="BIO")
        with caplog.at_level(logging.INFO, logger="app.test.context"):
            ctx.info("answer stored")
        record = caplog.records[-1]
        assert record.user_id == "1001"
        assert record.step == "BIO"


class TestConfig:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.telegram_mode == "polling"
        assert s.storage_bucket == "avatars"
        assert s.profiles_table == "job_seekers"
        assert not s.is_production

    def test_public_url_derived_from_supabase(self):
        s = Settings(_env_file=None, supabase_url="https://proj.supabase.co/")
        assert s.effective_storage_public_url == "https://proj.supabase.co/storage/v1/object/public"

    def test_explicit_public_url_wins(self):
        s = Settings(_env_file=None, supabase_url="https://proj.supabase.co", storage_public_url="https://cdn.example/")
        assert s.effective_storage_public_url == "https://cdn.example"

    def test_production_requires_credentials(self):
        s = Settings(_env_file=None, app_env="prod", telegram_mode="webhook")
        missing = s.validate_required_for_production()
        assert "telegram_bot_token" in missing
        assert "supabase_service_role_key" in missing
        assert "telegram_webhook_secret" in missing

    def test_dev_requires_nothing(self):
        assert Settings(_env_file=None).validate_required_for_production() == []

    def test_risky_config_warnings(self):
        warnings = warn_on_risky_config(Settings(_env_file=None, telegram_mode="webhook"))
        assert any("telegram_webhook_secret" in w for w in warnings)
        assert any("storage" in w.lower() for w in warnings)


def _update(update_id, text="hi", user_id=555):
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "from": {"id": user_id},
            "chat": {"id": user_id},
            "text": text,
        },
    }


class TestTelegramPoller:
    def setup_method(self):
        self.engine = MagicMock()
        self.engine.process_inbound_message = AsyncMock(return_value={"step": "EMAIL", "user_id": "555"})
        self.transport = MagicMock()
        self.transport.delete_webhook = AsyncMock()

    @pytest.mark.asyncio
    async def test_dispatch_runs_engine(self):
        poller = TelegramPoller(self.engine, self.transport)
        tasks = poller.dispatch(_update(1, "/start"))
        await asyncio.gather(*tasks)
        message = self.engine.process_inbound_message.await_args.args[0]
        assert message.command == "start"

    @pytest.mark.asyncio
    async def test_poll_loop_advances_offset(self):
        calls = []

        async def get_updates(offset=None, timeout=30):
            calls.append(offset)
            if len(calls) == 1:
                return [_update(7), _update(8)]
            await asyncio.sleep(3600)

        self.transport.get_updates = get_updates
        poller = TelegramPoller(self.engine, self.transport, poll_timeout=1)
        await poller.start()
        for _ in range(20):
            await asyncio.sleep(0)
        await poller.stop()

        assert calls[:2] == [None, 9]
        assert self.engine.process_inbound_message.await_count == 2
        assert not poller.running
        self.transport.delete_webhook.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_survives_webhook_delete_failure(self):
        self.transport.delete_webhook = AsyncMock(side_effect=TelegramSendError(401, 401, "Unauthorized"))
        async def idle(offset=None, timeout=30):
            await asyncio.sleep(3600)

        self.transport.get_updates = idle
        poller = TelegramPoller(self.engine, self.transport)
        await poller.start()
        assert poller.running
        await poller.stop()
