# tests/test_ops.py
"""Health probes, ledger integrity check, metrics endpoint and log format."""

import json
import logging
from datetime import date

import pytest

from ops.health import HealthCheck
from ops.logging_config import JsonFormatter, get_logging_config


@pytest.mark.django_db
class TestHealthChecks:
    def test_database_healthy(self):
        assert HealthCheck.check_database()["status"] == "healthy"

    def test_redis_skipped_without_broker(self, settings):
        settings.CELERY_BROKER_URL = "memory://"
        assert HealthCheck.check_redis()["status"] == "skipped"

    def test_ledger_balance_after_postings(self, actor, cash_account, capital_account):
        from accounting.commands import post_manual_entry

        result = post_manual_entry(
            actor,
            date=date(2025, 3, 1),
            description="Setoran modal",
            lines=[
                {"account_id": cash_account.id, "debit": "5000000"},
                {"account_id": capital_account.id, "credit": "5000000"},
            ],
        )
        assert result.success, result.error

        assert HealthCheck.check_ledger_balance()["status"] == "healthy"

    def test_full_health_report(self, company, settings):
        settings.CELERY_BROKER_URL = ""
        health = HealthCheck.get_full_health()
        assert set(health["checks"]) == {"databases", "redis", "projection_lag", "ledger_balance"}
        assert health["checks"]["databases"]["status"] == "healthy"


@pytest.mark.django_db
class TestOpsEndpoints:
    def test_liveness(self, client):
        response = client.get("/_health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/_health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_metrics_exposes_prometheus_text(self, client, company):
        response = client.get("/_metrics/")
        assert response.status_code == 200
        assert b"ledger_" in response.content


class TestJsonLogging:
    def _record(self, **extra):
        record = logging.LogRecord("accounting.ledger", logging.INFO, __file__, 10, "Journal entry posted", None, None)
        record.__dict__.update(extra)
        return record

    def test_context_keys_are_lifted(self):
        line = JsonFormatter().format(self._record(company="toko", entry_number="JE-202503-0001", total="100.00"))

        entry = json.loads(line)

        assert entry["message"] == "Journal entry posted"
        assert entry["company"] == "toko"
        assert entry["entry_number"] == "JE-202503-0001"
        assert entry["extra"] == {"total": "100.00"}

    def test_console_format_in_debug(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        config = get_logging_config(debug=True)
        assert "()" not in config["formatters"]["default"]
        assert config["loggers"]["django.db.backends"]["handlers"] == ["console"]
