"""Tests for settings loading and validation."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from recocache.config import Settings


def test_defaults():
    settings = Settings()

    assert settings.staleness_window == timedelta(hours=3)
    assert settings.fallback_size == 10
    assert settings.single_flight_training is True
    assert settings.min_actions_for_training == 0
    assert settings.fetch_workers == 8


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("RECOCACHE_STALENESS_WINDOW_HOURS", "4")
    monkeypatch.setenv("RECOCACHE_API_TOKENS", '{"abc": "user-1"}')
    monkeypatch.setenv("RECOCACHE_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.staleness_window == timedelta(hours=4)
    assert settings.api_tokens == {"abc": "user-1"}
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("hours", [0, -1])
def test_rejects_non_positive_window(hours):
    with pytest.raises(ValidationError):
        Settings(staleness_window_hours=hours)


def test_rejects_unknown_log_level():
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")
