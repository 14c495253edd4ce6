from __future__ import annotations

from pathlib import Path

import pytest

from noted.config import CALENDAR_COOLDOWN, DEFAULT_DATA_DIR, Settings


def test_defaults(monkeypatch):
    for name in ("NOTED_API_PORT", "NOTED_PORT_FILE", "NOTED_DATA_DIR", "NOTED_CALENDAR_COOLDOWN", "NOTED_TOAST_TTL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.api_port == 8080
    assert settings.port_file is None
    assert settings.data_dir == DEFAULT_DATA_DIR
    assert settings.calendar_cooldown == CALENDAR_COOLDOWN == 30.0
    assert settings.toast_ttl == 3.0


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("NOTED_API_PORT", "9001")
    monkeypatch.setenv("NOTED_PORT_FILE", str(tmp_path / "port"))
    monkeypatch.setenv("NOTED_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("NOTED_CALENDAR_COOLDOWN", "5")
    monkeypatch.setenv("NOTED_TOAST_TTL", "0.5")
    settings = Settings.from_env()
    assert settings.api_port == 9001
    assert settings.port_file == Path(tmp_path / "port")
    assert settings.theme_path == tmp_path / "theme"
    assert settings.calendar_cooldown == 5.0
    assert settings.toast_ttl == 0.5


def test_invalid_number_is_rejected(monkeypatch):
    monkeypatch.setenv("NOTED_CALENDAR_COOLDOWN", "soon")
    with pytest.raises(ValueError, match="NOTED_CALENDAR_COOLDOWN"):
        Settings.from_env()
