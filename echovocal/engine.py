"""
Synthesis client – request shaping, dispatch, and response decoding.
=====================================================================
Wraps the Gemini speech API. The credential is injected; there is no
module-level client, so tests can pass fake credentials and clients.

Usage:
    from echovocal.engine import SpeechSynthesizer
    from echovocal.models import TTSConfig

    synth = SpeechSynthesizer(api_key="...")
    result = synth.generate_speech("Hello world!", TTSConfig())
    Path("hello.wav").write_bytes(result.wav)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from google import genai
from google.genai import types

from echovocal.audio_utils import audio_buffer_to_wav_bytes, decode_base64, decode_pcm_to_audio_buffer
from echovocal.config import Config, config as default_config
from echovocal.errors import EchoVocalError, ErrorKind
from echovocal.models import CustomVoice, SynthesisResult, TTSConfig

logger = logging.getLogger(__name__)

# Factory building a remote client from an API key
ClientFactory = Callable[[str], Any]


# ---------------------------------------------------------------------------
# Instruction helpers
# ---------------------------------------------------------------------------

def speed_phrase(speed: float) -> str:
    """Qualifier for the speaking rate ("" at normal speed)."""
    if speed == 1:
        return ""
    return "fast-paced" if speed > 1 else "slow-paced"


def pitch_phrase(pitch: int) -> str:
    """Qualifier for the pitch offset ("" at zero)."""
    if pitch == 0:
        return ""
    return "high-pitched" if pitch > 0 else "deep/low-pitched"


def _join(*items: str) -> str:
    return ", ".join(i for i in items if i)


def build_instruction(config: TTSConfig) -> str:
    """Build the style instruction for one of the three request modes.

    Reference audio selects mimicry mode, a custom voice without reference
    selects the vocal-profile mode, anything else is a preset voice.
    """
    speed = speed_phrase(config.speed)
    pitch = pitch_phrase(config.pitch)
    description = config.voice_description.strip()

    if config.has_reference:
        instruction = (
            "MIMICRY MODE: Listen to the provided audio reference carefully. "
            "Analyze the speaker's timbre, pitch, and prosody. "
            "Generate speech for the provided text by strictly mimicking the voice "
            "in the audio reference. "
            f"Apply these modifiers if possible: {_join(config.emotion, speed, pitch)}."
        )
        if description:
            instruction += f" Additional context: {description}"
        return instruction

    if isinstance(config.voice, CustomVoice):
        return f"Adopt this vocal profile: [{_join(description, config.emotion, speed, pitch)}]."

    instruction = f"Speak in a {config.emotion} tone"
    modifiers = " ".join(p for p in (speed, pitch) if p)
    if modifiers:
        instruction += f" with {modifiers} modifiers"
    instruction += "."
    if description:
        instruction += f" {description}"
    return instruction


def build_prompt(text: str, config: TTSConfig) -> str:
    """Instruction followed by the text to speak."""
    return f"{build_instruction(config)}\n\nTEXT TO SPEAK: {text}"


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_CODE_KINDS: dict[int, ErrorKind] = {
    403: ErrorKind.MODEL_UNAVAILABLE,
    404: ErrorKind.MODEL_UNAVAILABLE,
    429: ErrorKind.QUOTA_EXCEEDED,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MODEL_UNAVAILABLE: (
        "Model not found or access denied (404). Try an API key from an account "
        "with access to the Gemini 2.5 preview models."
    ),
    ErrorKind.QUOTA_EXCEEDED: "API key quota exhausted (429). Please switch to another API key.",
    ErrorKind.INVALID_CREDENTIAL: "Invalid API key. Please check your key settings.",
    ErrorKind.UNSUPPORTED_MODALITY: "This input combination is not supported by the model.",
}


def _kind_from_message(message: str) -> ErrorKind | None:
    lowered = message.lower()
    if "404" in message or "NOT_FOUND" in message or "PERMISSION_DENIED" in message:
        return ErrorKind.MODEL_UNAVAILABLE
    if "429" in message or "quota" in lowered or "RESOURCE_EXHAUSTED" in message:
        return ErrorKind.QUOTA_EXCEEDED
    if "api key" in lowered or "API_KEY_INVALID" in message:
        return ErrorKind.INVALID_CREDENTIAL
    if "modality" in lowered:
        return ErrorKind.UNSUPPORTED_MODALITY
    return None


def classify_error(exc: BaseException) -> EchoVocalError | None:
    """Map a remote API failure to a user-facing error.

    The HTTP status code is used when the exception carries one; otherwise
    the message is searched for known markers. Returns None for failures
    that don't match any category.
    """
    kind: ErrorKind | None = None
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        kind = _CODE_KINDS.get(code)
    if kind is None:
        kind = _kind_from_message(str(exc))
    if kind is None:
        return None
    return EchoVocalError(kind, _MESSAGES[kind])


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------

def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


class SpeechSynthesizer:
    """Builds speech requests, calls the remote API, and decodes the audio.

    Parameters
    ----------
    api_key : str
        Credential passed to the remote client.
    config : Config | None
        Model names, fallback voice and output format.
    client_factory : ClientFactory | None
        Builds a client from an API key (default: ``genai.Client``).
    """

    def __init__(
        self,
        api_key: str = "",
        config: Config | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config or default_config
        self._api_key = api_key
        self._client_factory = client_factory or _default_client_factory

    # -- credential ---------------------------------------------------------

    @property
    def api_key(self) -> str:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        self._api_key = value

    # -- request shaping ----------------------------------------------------

    def resolve_voice(self, config: TTSConfig) -> str:
        """Return the preset voice name sent to the API.

        The API's voice parameter only accepts presets, so custom voices use
        the configured fallback and carry their description in the prompt.
        """
        if isinstance(config.voice, CustomVoice):
            return self.config.fallback_voice
        return config.voice.name.value

    def build_contents(self, text: str, config: TTSConfig) -> list[types.Content]:
        """Content parts: optional reference audio, then instruction + text."""
        parts: list[types.Part] = []
        if config.reference_audio is not None:
            parts.append(types.Part.from_bytes(
                data=config.reference_audio.data,
                mime_type=config.reference_audio.mime_type,
            ))
        parts.append(types.Part.from_text(text=build_prompt(text, config)))
        return [types.Content(role="user", parts=parts)]

    def build_generation_config(self, voice: str) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )

    # -- response handling --------------------------------------------------

    @staticmethod
    def extract_audio(response: Any) -> bytes | None:
        """Return the first inline audio payload of a response, if any.

        The payload may arrive as raw bytes or as base64 text.
        """
        try:
            data = response.candidates[0].content.parts[0].inline_data.data
        except (AttributeError, IndexError, TypeError):
            return None
        if not data:
            return None
        if isinstance(data, str):
            return decode_base64(data)
        return bytes(data)

    # -- public API ---------------------------------------------------------

    def generate_speech(self, text: str, config: TTSConfig) -> SynthesisResult:
        """Generate speech for *text* with the given voice configuration.

        Raises
        ------
        EchoVocalError
            For missing credentials, empty input, invalid custom voices,
            empty responses, undecodable audio, and classified API failures.
        Exception
            Unclassified API failures are re-raised unchanged.
        """
        if not self._api_key:
            raise EchoVocalError(
                ErrorKind.MISSING_CREDENTIAL,
                "API key is not set. Please enter your Google Gemini API key in the settings.",
            )
        if not text.strip():
            raise EchoVocalError(ErrorKind.EMPTY_INPUT, "Text is empty.")
        config.validate()

        model = self.config.model_for(config.has_reference)
        voice = self.resolve_voice(config)
        logger.info(
            "Generating speech: model=%s voice=%s mode=%s chars=%d",
            model, voice,
            "mimicry" if config.has_reference else "custom" if config.is_custom else "preset",
            len(text),
        )

        client = self._client_factory(self._api_key)
        t0 = time.perf_counter()
        try:
            response = client.models.generate_content(
                model=model,
                contents=self.build_contents(text, config),
                config=self.build_generation_config(voice),
            )
        except Exception as e:
            logger.error("TTS generation failed: %s", e)
            classified = classify_error(e)
            if classified is None:
                raise
            raise classified from e

        pcm = self.extract_audio(response)
        if pcm is None:
            raise EchoVocalError(
                ErrorKind.EMPTY_RESPONSE,
                "No audio data received. The API response was empty.",
            )

        buffer = decode_pcm_to_audio_buffer(pcm, self.config.sample_rate, self.config.channels)
        wav = audio_buffer_to_wav_bytes(buffer)

        result = SynthesisResult(
            wav=wav,
            sample_rate=buffer.sample_rate,
            duration=buffer.duration,
            model=model,
            voice=voice,
        )
        logger.info("Generation complete in %.1fs: %s", time.perf_counter() - t0, result.summary)
        return result
