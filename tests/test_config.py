"""Tests for echovocal.config."""

from pathlib import Path


def test_config_defaults():
    """Config should have sensible defaults."""
    from echovocal.config import Config

    cfg = Config()
    assert cfg.tts_model == "gemini-2.5-flash-preview-tts"
    assert cfg.native_audio_model == "gemini-2.5-flash-native-audio-preview-12-2025"
    assert cfg.fallback_voice == "Kore"
    assert cfg.sample_rate == 24000
    assert cfg.channels == 1
    assert cfg.max_reference_bytes == 10 * 1024 * 1024
    assert cfg.gradio_port == 7861
    assert cfg.api_port == 7862


def test_config_model_for():
    """Reference audio should route to the native-audio model."""
    from echovocal.config import Config

    cfg = Config()
    assert cfg.model_for(has_reference=True) == cfg.native_audio_model
    assert cfg.model_for(has_reference=False) == cfg.tts_model


def test_config_from_env(monkeypatch):
    """Config should read from environment variables."""
    from echovocal.config import Config

    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    monkeypatch.setenv("ECHOVOCAL_TTS_MODEL", "tts-x")
    monkeypatch.setenv("ECHOVOCAL_FALLBACK_VOICE", "Puck")
    monkeypatch.setenv("ECHOVOCAL_STORAGE_FILE", "/tmp/ev/storage.json")
    monkeypatch.setenv("ECHOVOCAL_MAX_REFERENCE_MB", "2")
    monkeypatch.setenv("ECHOVOCAL_GRADIO_PORT", "9999")

    cfg = Config.from_env()
    assert cfg.api_key == "env-key"
    assert cfg.tts_model == "tts-x"
    assert cfg.fallback_voice == "Puck"
    assert cfg.storage_file == Path("/tmp/ev/storage.json")
    assert cfg.max_reference_bytes == 2 * 1024 * 1024
    assert cfg.gradio_port == 9999


def test_config_from_env_api_key_fallback(monkeypatch):
    from echovocal.config import Config

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "legacy-key")

    assert Config.from_env().api_key == "legacy-key"


def test_config_ensure_dirs(tmp_path):
    """ensure_dirs should create directories."""
    from echovocal.config import Config

    output = tmp_path / "output"
    storage = tmp_path / "state" / "storage.json"
    cfg = Config(output_dir=output, storage_file=storage)

    assert not output.exists()

    cfg.ensure_dirs()

    assert output.is_dir()
    assert storage.parent.is_dir()
