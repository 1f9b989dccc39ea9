"""
Domain model for EchoVocal.
===========================
Voice selection, synthesis parameters, results and history entries.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Union

from echovocal.errors import ValidationError

# ---------------------------------------------------------------------------
# Voices & emotions
# ---------------------------------------------------------------------------

class VoiceName(str, Enum):
    """Prebuilt voices understood by the remote speech API."""

    KORE = "Kore"
    PUCK = "Puck"
    CHARON = "Charon"
    FENRIR = "Fenrir"
    ZEPHYR = "Zephyr"


CUSTOM_VOICE_LABEL = "Custom (description)"

EMOTIONS = [
    "neutral", "cheerful", "serious", "calm", "excited",
    "whispering", "sad", "angry", "friendly",
]

SPEED_RANGE = (0.5, 2.0)
PITCH_RANGE = (-10, 10)
PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class PresetVoice:
    """A named prebuilt voice."""

    name: VoiceName

    @property
    def label(self) -> str:
        return self.name.value


@dataclass(frozen=True)
class CustomVoice:
    """A voice described by free text and/or a reference recording."""

    @property
    def label(self) -> str:
        return CUSTOM_VOICE_LABEL


Voice = Union[PresetVoice, CustomVoice]

VOICE_LABELS = [v.value for v in VoiceName] + [CUSTOM_VOICE_LABEL]


def parse_voice(label: str) -> Voice:
    """Map a UI/API voice label to a Voice.

    Preset names are matched case-insensitively; ``"custom"`` is accepted as
    a short alias for the custom marker.
    """
    if label in (CUSTOM_VOICE_LABEL, "custom", "Custom"):
        return CustomVoice()
    for name in VoiceName:
        if name.value.lower() == label.strip().lower():
            return PresetVoice(name)
    raise ValueError(f"Unknown voice: {label!r}")


# ---------------------------------------------------------------------------
# Request parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceAudio:
    """Uploaded reference recording for voice mimicry."""

    data: bytes
    mime_type: str = "audio/mpeg"
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class TTSConfig:
    """Voice and style parameters of a synthesis request."""

    voice: Voice = field(default_factory=lambda: PresetVoice(VoiceName.KORE))
    emotion: str = "neutral"
    speed: float = 1.0
    pitch: int = 0
    voice_description: str = ""
    reference_audio: ReferenceAudio | None = None

    @property
    def is_custom(self) -> bool:
        return isinstance(self.voice, CustomVoice)

    @property
    def has_reference(self) -> bool:
        return self.reference_audio is not None

    def validate(self) -> None:
        """Reject configurations that cannot be dispatched.

        Raises
        ------
        ValidationError
            If a custom voice has neither a description nor reference audio.
        ValueError
            If speed or pitch is out of range.
        """
        lo, hi = SPEED_RANGE
        if not lo <= self.speed <= hi:
            raise ValueError(f"Speed must be between {lo} and {hi}, got {self.speed}")
        lo, hi = PITCH_RANGE
        if not lo <= self.pitch <= hi:
            raise ValueError(f"Pitch must be between {lo} and {hi}, got {self.pitch}")

        if self.is_custom and not self.voice_description.strip() and not self.has_reference:
            raise ValidationError(
                "Please enter a voice description or upload reference audio for custom mode."
            )

    def snapshot(self) -> TTSConfig:
        """Return an independent copy for the history."""
        return replace(self)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class SynthesisResult:
    """Decoded speech returned by the synthesis client."""

    wav: bytes
    sample_rate: int
    duration: float = 0.0  # seconds
    model: str = ""
    voice: str = ""

    @property
    def summary(self) -> str:
        """Human-readable summary of the generation."""
        return f"{self.duration:.1f}s audio, voice {self.voice}, model {self.model}"


def preview_text(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Truncate text for list display, adding an ellipsis when cut."""
    return text[:limit] + ("..." if len(text) > limit else "")


@dataclass
class HistoryEntry:
    """One generated clip kept for the lifetime of a session."""

    text: str
    config: TTSConfig
    result: SynthesisResult
    handle: Path | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def download_name(self) -> str:
        return f"echovocal-{self.id[:8]}.wav"

    @property
    def label(self) -> str:
        if self.config.has_reference:
            return "Clone"
        if self.config.is_custom:
            return "Custom"
        return self.config.voice.label
