from datetime import timedelta

import pytest
from pydantic import ValidationError

from goldenboot.config import DEFAULT_CONFIG, EngineConfig


def test_defaults():
    assert DEFAULT_CONFIG.turn_length == timedelta(seconds=30)
    assert DEFAULT_CONFIG.unattended_turn_length == timedelta(seconds=3)
    assert DEFAULT_CONFIG.presence_timeout == timedelta(seconds=15)
    assert DEFAULT_CONFIG.store_path is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GOLDENBOOT_TURN_SECONDS", "45")
    monkeypatch.setenv("GOLDENBOOT_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("GOLDENBOOT_STORE_PATH", "/tmp/goldenboot.json")
    monkeypatch.setenv("GOLDENBOOT_DEFAULT_DRAFT_ROUNDS", "")
    monkeypatch.setenv("TURN_SECONDS", "99")
    config = EngineConfig()
    assert config.turn_seconds == 45
    assert config.poll_interval_seconds == 0.5
    assert config.store_path == "/tmp/goldenboot.json"
    assert config.default_draft_rounds == 5


def test_explicit_values_beat_environment(monkeypatch):
    monkeypatch.setenv("GOLDENBOOT_TURN_SECONDS", "45")
    assert EngineConfig(turn_seconds=20).turn_seconds == 20


def test_environment_rejects_garbage(monkeypatch):
    monkeypatch.setenv("GOLDENBOOT_TURN_SECONDS", "soon")
    with pytest.raises(ValidationError):
        EngineConfig()


def test_frozen():
    with pytest.raises(ValidationError):
        DEFAULT_CONFIG.turn_seconds = 10
