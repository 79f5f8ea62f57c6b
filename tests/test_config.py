"""Tests for application settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from skillsync.config import Settings, get_settings, reset_settings_cache


def test_defaults_match_delivery_tunables(monkeypatch) -> None:
    monkeypatch.delenv("RETRY_MAX_ATTEMPTS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.retry_max_attempts == 3
    assert settings.retry_initial_delay_seconds == 1.0
    assert settings.pending_retry_max_attempts == 2
    assert settings.pending_expiry_seconds == 86400
    assert settings.cache_freshness_seconds == 300
    assert settings.fetch_throttle_seconds == 120
    assert settings.poll_interval_seconds == 300
    assert settings.messaging_poll_interval_seconds == 20
    assert settings.local_id_prefix == "local-"


def test_environment_overrides_are_cached_until_reset(monkeypatch) -> None:
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
    reset_settings_cache()
    assert get_settings().retry_max_attempts == 5

    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "7")
    assert get_settings().retry_max_attempts == 5

    reset_settings_cache()
    assert get_settings().retry_max_attempts == 7
    monkeypatch.delenv("RETRY_MAX_ATTEMPTS")
    reset_settings_cache()


def test_messaging_poll_must_not_exceed_regular_poll() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, poll_interval_seconds=10, messaging_poll_interval_seconds=30)
