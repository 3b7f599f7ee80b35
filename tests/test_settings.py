"""Tests for user settings."""

import json

import pytest
from pydantic import ValidationError

from autoshorts_cli.config.settings import Settings, load_user_config, save_user_config


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings file at a temp dir and clear related env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AUTOSHORTS_SETTINGS_FILE", str(tmp_path / "settings.json"))
    for name in ("GEMINI_API_KEY", "AUTOSHORTS_GEMINI_API_KEYS", "GEMINI_API_KEYS", "AUTOSHORTS_RENDER_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "settings.json"


def test_defaults_map_to_core_config():
    config = load_user_config()
    assert config.chunks.target_seconds == 1800
    assert config.chunks.max_last_seconds == 2700
    assert config.bounds.min_seconds == 10
    assert config.analysis.model == "gemini-2.5-flash"
    assert not config.analysis.is_configured


def test_save_merges_into_file(isolated_settings):
    save_user_config({"chunk_minutes": "20"})
    save_user_config({"render_workers": 4})

    stored = json.loads(isolated_settings.read_text(encoding="utf-8"))
    assert stored == {"chunk_minutes": 20.0, "render_workers": 4}

    config = load_user_config()
    assert config.chunks.target_seconds == 1200
    assert config.render.workers == 4


def test_unknown_key_rejected():
    with pytest.raises(KeyError):
        save_user_config({"whisper_model": "base"})


def test_invalid_value_not_written(isolated_settings):
    with pytest.raises(ValidationError):
        save_user_config({"render_crf": 99})
    assert not isolated_settings.exists()


def test_env_overrides_file(monkeypatch):
    save_user_config({"render_workers": 4})
    monkeypatch.setenv("AUTOSHORTS_RENDER_WORKERS", "6")
    assert Settings().render_workers == 6


def test_api_keys_from_plain_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "aaa, bbb,")
    settings = Settings()
    assert settings.api_keys == ["aaa", "bbb"]
    assert settings.to_config().analysis.is_configured


def test_final_chunk_never_shorter_than_target():
    save_user_config({"chunk_minutes": 60})
    config = load_user_config()
    assert config.chunks.max_last_seconds == config.chunks.target_seconds == 3600
