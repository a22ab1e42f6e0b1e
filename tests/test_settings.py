"""Tests for runtime_core.settings.Settings behavior."""

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from runtime_core.event_bus import get_event_bus
from runtime_core.settings import Settings, get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    """Defaults should be stable even if external env or .env sets values.

    We explicitly delete the variables and bypass .env loading by passing
    `_env_file=None`.
    """
    for var in [
        "RUNTIME_CORE_LOG_LEVEL",
        "RUNTIME_CORE_API_CONFIG_PATH",
        "RUNTIME_CORE_EVENT_HISTORY_SIZE",
        "RUNTIME_CORE_EVENT_DEBUG",
    ]:
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    assert s.log_level == "INFO"
    assert s.api_config_path is None
    assert s.event_history_size == 100
    assert s.event_debug is False


def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RUNTIME_CORE_LOG_LEVEL", "debug")
    monkeypatch.setenv("RUNTIME_CORE_API_CONFIG_PATH", "/etc/runtime/api-config.json")
    monkeypatch.setenv("RUNTIME_CORE_EVENT_HISTORY_SIZE", "5")
    monkeypatch.setenv("RUNTIME_CORE_EVENT_DEBUG", "true")
    s = Settings(_env_file=None)
    assert s.log_level == "DEBUG"
    assert s.api_config_path == Path("/etc/runtime/api-config.json")
    assert s.event_history_size == 5
    assert s.event_debug is True


def test_case_insensitive_env_name(monkeypatch: pytest.MonkeyPatch):
    # lower-case variable name should still be picked up due to case_sensitive=False
    monkeypatch.setenv("runtime_core_event_history_size", "7")
    s = Settings(_env_file=None)
    assert s.event_history_size == 7


@pytest.mark.parametrize(
    "override",
    [
        {"log_level": "VERBOSE"},
        {"event_history_size": -1},
    ],
)
def test_invalid_values_rejected(override: dict[str, Any]):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **override)


def test_get_settings_singleton():
    a = get_settings()
    b = get_settings()
    assert a is b


def test_get_settings_cache_not_affected_by_new_env(monkeypatch: pytest.MonkeyPatch):
    first = get_settings()
    original = first.event_history_size
    monkeypatch.setenv("RUNTIME_CORE_EVENT_HISTORY_SIZE", str(original + 1))
    second = get_settings()
    assert second is first
    assert second.event_history_size == original


def test_event_bus_uses_history_size(monkeypatch: pytest.MonkeyPatch):
    """The process bus keeps as many emissions as configured."""
    monkeypatch.setenv("RUNTIME_CORE_EVENT_HISTORY_SIZE", "2")
    bus = get_event_bus()
    for topic in ("a:1", "a:2", "a:3"):
        bus.publish(topic)
    assert [entry.topic for entry in bus.recent_history()] == ["a:2", "a:3"]
