"""Shared fixtures: temporary config and a fake Gemini client."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from echovocal.config import Config
from echovocal.engine import SpeechSynthesizer


def make_pcm(n_samples: int = 2400) -> bytes:
    """Deterministic 16-bit mono PCM (a ramp through the full range)."""
    samples = np.linspace(-32768, 32767, n_samples).astype("<i2")
    return samples.tobytes()


def make_response(data) -> SimpleNamespace:
    """Build an object shaped like a generate_content response."""
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="audio/L16;rate=24000"))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        storage_file=tmp_path / "storage.json",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def fake_client():
    """A mock client whose generate_content returns 0.1s of audio."""
    client = MagicMock()
    client.models.generate_content.return_value = make_response(make_pcm())
    return client


@pytest.fixture
def synthesizer(cfg, fake_client) -> SpeechSynthesizer:
    return SpeechSynthesizer(api_key="test-key", config=cfg, client_factory=lambda key: fake_client)
