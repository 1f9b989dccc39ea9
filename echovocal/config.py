"""
Centralized configuration for EchoVocal.
========================================
Remote model names, voice defaults, storage paths and server ports in one
place. Supports environment variables and .env files.

Usage:
    from echovocal.config import config
    print(config.tts_model)
    print(config.storage_file)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_USER_DIR = Path.home() / ".echovocal"

STORAGE_KEY = "echovocal_api_key"
MAX_REFERENCE_BYTES = 10 * 1024 * 1024


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    """Application-wide configuration."""

    # Paths
    project_root: Path = _PROJECT_ROOT
    storage_file: Path = field(default_factory=lambda: _USER_DIR / "storage.json")
    output_dir: Path = field(default_factory=lambda: _PROJECT_ROOT / "output")

    # Remote API
    api_key: str = ""
    tts_model: str = "gemini-2.5-flash-preview-tts"
    native_audio_model: str = "gemini-2.5-flash-native-audio-preview-12-2025"
    fallback_voice: str = "Kore"
    sample_rate: int = 24000
    channels: int = 1

    # Reference audio upload limit (bytes)
    max_reference_bytes: int = MAX_REFERENCE_BYTES

    # Gradio
    gradio_host: str = "127.0.0.1"
    gradio_port: int = 7861

    # REST API
    api_host: str = "0.0.0.0"
    api_port: int = 7862

    # --- derived helpers ---------------------------------------------------

    def model_for(self, has_reference: bool) -> str:
        """Return the remote model identifier for a request.

        Reference audio needs the native-audio model, which accepts audio
        input parts; everything else goes to the dedicated TTS model.
        """
        return self.native_audio_model if has_reference else self.tts_model

    def ensure_dirs(self) -> None:
        """Create output and storage directories if they don't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.storage_file.parent.mkdir(parents=True, exist_ok=True)

    # --- factory -----------------------------------------------------------

    @classmethod
    def from_env(cls) -> Config:
        """Create a Config from environment variables.

        Recognized variables (all optional):
            GEMINI_API_KEY / API_KEY     – default credential
            ECHOVOCAL_TTS_MODEL          – model used without reference audio
            ECHOVOCAL_NATIVE_MODEL       – model used with reference audio
            ECHOVOCAL_FALLBACK_VOICE     – preset used for custom voices
            ECHOVOCAL_STORAGE_FILE       – path of the credential store
            ECHOVOCAL_OUTPUT_DIR         – path to output directory
            ECHOVOCAL_MAX_REFERENCE_MB   – upload limit in MiB
            ECHOVOCAL_GRADIO_HOST        – Gradio bind address
            ECHOVOCAL_GRADIO_PORT        – Gradio server port
            ECHOVOCAL_API_PORT           – REST server port
        """
        # Try loading a .env file if python-dotenv is available
        try:
            from dotenv import load_dotenv
            load_dotenv(_PROJECT_ROOT / ".env")
        except ImportError:
            pass

        kwargs: dict = {}

        if v := os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"):
            kwargs["api_key"] = v
        if v := os.getenv("ECHOVOCAL_TTS_MODEL"):
            kwargs["tts_model"] = v
        if v := os.getenv("ECHOVOCAL_NATIVE_MODEL"):
            kwargs["native_audio_model"] = v
        if v := os.getenv("ECHOVOCAL_FALLBACK_VOICE"):
            kwargs["fallback_voice"] = v
        if v := os.getenv("ECHOVOCAL_STORAGE_FILE"):
            kwargs["storage_file"] = Path(v).expanduser()
        if v := os.getenv("ECHOVOCAL_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(v)
        if v := os.getenv("ECHOVOCAL_MAX_REFERENCE_MB"):
            kwargs["max_reference_bytes"] = int(float(v) * 1024 * 1024)
        if v := os.getenv("ECHOVOCAL_GRADIO_HOST"):
            kwargs["gradio_host"] = v
        if v := os.getenv("ECHOVOCAL_GRADIO_PORT"):
            kwargs["gradio_port"] = int(v)
        if v := os.getenv("ECHOVOCAL_API_PORT"):
            kwargs["api_port"] = int(v)

        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Module-level default
# ---------------------------------------------------------------------------

config = Config.from_env()
