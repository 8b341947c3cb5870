"""AppSettings: defaults, environment overrides, validation; JSON log formatting."""

import json
import logging

import pytest
from pydantic import ValidationError

from access_ledger.config.logging import JsonFormatter
from access_ledger.config.settings import AppSettings
from access_ledger.core.context import correlation_id_ctx


def test_defaults_are_in_memory_and_sampled(monkeypatch):
    for name in ("DATABASE_URL", "REDIS_URL", "RABBITMQ_URL", "READ_ALLOW_AUDIT"):
        monkeypatch.delenv(name, raising=False)
    settings = AppSettings()
    assert settings.database_url is None
    assert settings.read_allow_audit == "sampled"
    assert settings.super_role_slugs == ["super-admin"]
    assert settings.integrity_sweep_interval_seconds == 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("READ_ALLOW_AUDIT", "all")
    monkeypatch.setenv("PERMISSION_STORE_TIMEOUT_SECONDS", "0.5")
    monkeypatch.setenv("SUPER_ROLE_SLUGS", '["super-admin", "owner"]')
    settings = AppSettings()
    assert settings.read_allow_audit == "all"
    assert settings.permission_store_timeout_seconds == 0.5
    assert settings.super_role_slugs == ["super-admin", "owner"]


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        AppSettings(read_allow_audit="sometimes")
    with pytest.raises(ValidationError):
        AppSettings(audit_append_max_retries=0)


def test_json_formatter_includes_context_and_extra():
    token = correlation_id_ctx.set("c-1")
    try:
        record = logging.LogRecord("access_ledger.test", logging.INFO, __file__, 1, "audit_record_appended", None, None)
        record.position = 3
        payload = json.loads(JsonFormatter().format(record))
    finally:
        correlation_id_ctx.reset(token)
    assert payload["message"] == "audit_record_appended"
    assert payload["correlation_id"] == "c-1"
    assert payload["position"] == 3
    assert payload["level"] == "INFO"
