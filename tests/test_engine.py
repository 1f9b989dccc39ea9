"""Tests for echovocal.engine (remote client mocked)."""

import base64

import pytest

from echovocal.audio_utils import parse_wav_header
from echovocal.engine import (
    SpeechSynthesizer,
    build_instruction,
    build_prompt,
    classify_error,
    pitch_phrase,
    speed_phrase,
)
from echovocal.errors import EchoVocalError, ErrorKind, ValidationError
from echovocal.models import CustomVoice, PresetVoice, ReferenceAudio, TTSConfig, VoiceName

from conftest import make_pcm, make_response


# ---------------------------------------------------------------------------
# Instruction building
# ---------------------------------------------------------------------------

class TestInstructions:
    def test_neutral_speed_and_pitch_add_no_qualifiers(self):
        instruction = build_instruction(TTSConfig(speed=1.0, pitch=0))
        assert "paced" not in instruction
        assert "pitched" not in instruction
        assert instruction == "Speak in a neutral tone."

    def test_speed_phrases(self):
        assert speed_phrase(1.0) == ""
        assert speed_phrase(1.5) == "fast-paced"
        assert speed_phrase(0.5) == "slow-paced"

    def test_pitch_phrases(self):
        assert pitch_phrase(0) == ""
        assert pitch_phrase(4) == "high-pitched"
        assert pitch_phrase(-3) == "deep/low-pitched"

    def test_preset_instruction_with_modifiers(self):
        cfg = TTSConfig(emotion="cheerful", speed=1.5, pitch=-3, voice_description="Whisper the end.")
        instruction = build_instruction(cfg)
        assert instruction == (
            "Speak in a cheerful tone with fast-paced deep/low-pitched modifiers. Whisper the end."
        )

    def test_custom_instruction(self):
        cfg = TTSConfig(voice=CustomVoice(), voice_description="old sailor, raspy", emotion="calm", pitch=2)
        assert build_instruction(cfg) == "Adopt this vocal profile: [old sailor, raspy, calm, high-pitched]."

    def test_mimicry_instruction(self):
        cfg = TTSConfig(
            reference_audio=ReferenceAudio(data=b"ID3", mime_type="audio/mpeg"),
            voice_description="keep it slow",
            speed=0.8,
        )
        instruction = build_instruction(cfg)
        assert instruction.startswith("MIMICRY MODE:")
        assert "Apply these modifiers if possible: neutral, slow-paced." in instruction
        assert instruction.endswith("Additional context: keep it slow")

    def test_prompt_contains_text(self):
        prompt = build_prompt("Hello there", TTSConfig())
        assert prompt.endswith("\n\nTEXT TO SPEAK: Hello there")


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

class TestPreconditions:
    def test_missing_credential(self, cfg, fake_client):
        synth = SpeechSynthesizer(api_key="", config=cfg, client_factory=lambda key: fake_client)
        with pytest.raises(EchoVocalError) as exc:
            synth.generate_speech("", TTSConfig())
        assert exc.value.kind is ErrorKind.MISSING_CREDENTIAL
        fake_client.models.generate_content.assert_not_called()

    def test_empty_text(self, synthesizer, fake_client):
        with pytest.raises(EchoVocalError) as exc:
            synthesizer.generate_speech("   ", TTSConfig())
        assert exc.value.kind is ErrorKind.EMPTY_INPUT
        fake_client.models.generate_content.assert_not_called()

    def test_custom_without_description_or_reference(self, synthesizer, fake_client):
        """Rejected before any network call."""
        with pytest.raises(ValidationError):
            synthesizer.generate_speech("Hello", TTSConfig(voice=CustomVoice(), voice_description="  "))
        fake_client.models.generate_content.assert_not_called()

    def test_speed_out_of_range(self, synthesizer):
        with pytest.raises(ValueError):
            synthesizer.generate_speech("Hello", TTSConfig(speed=3.0))

    def test_api_key_setter(self, synthesizer):
        synthesizer.api_key = "other"
        assert synthesizer.api_key == "other"


# ---------------------------------------------------------------------------
# Request shaping & response handling
# ---------------------------------------------------------------------------

class TestGenerate:
    def test_preset_request(self, synthesizer, fake_client, cfg):
        result = synthesizer.generate_speech("Hello world", TTSConfig(voice=PresetVoice(VoiceName.PUCK)))

        kwargs = fake_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == cfg.tts_model
        parts = kwargs["contents"][0].parts
        assert len(parts) == 1
        assert parts[0].text.endswith("TEXT TO SPEAK: Hello world")
        assert kwargs["config"].response_modalities == ["AUDIO"]
        voice = kwargs["config"].speech_config.voice_config.prebuilt_voice_config.voice_name
        assert voice == "Puck"

        header = parse_wav_header(result.wav)
        assert header.sample_rate == 24000
        assert header.channels == 1
        assert header.data_size == len(make_pcm())
        assert result.duration == pytest.approx(0.1)
        assert result.voice == "Puck"
        assert result.model == cfg.tts_model

    def test_custom_voice_uses_fallback_preset(self, synthesizer, fake_client):
        synthesizer.generate_speech("Hi", TTSConfig(voice=CustomVoice(), voice_description="robot"))

        kwargs = fake_client.models.generate_content.call_args.kwargs
        voice = kwargs["config"].speech_config.voice_config.prebuilt_voice_config.voice_name
        assert voice == "Kore"
        assert "Adopt this vocal profile: [robot" in kwargs["contents"][0].parts[0].text

    def test_reference_audio_routes_to_native_model(self, synthesizer, fake_client, cfg):
        ref = ReferenceAudio(data=b"RIFFfake", mime_type="audio/wav")
        synthesizer.generate_speech("Hi", TTSConfig(voice=CustomVoice(), reference_audio=ref))

        kwargs = fake_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == cfg.native_audio_model
        parts = kwargs["contents"][0].parts
        assert len(parts) == 2
        assert parts[0].inline_data.data == b"RIFFfake"
        assert parts[0].inline_data.mime_type == "audio/wav"
        assert parts[1].text.startswith("MIMICRY MODE:")

    def test_credential_passed_to_client_factory(self, cfg, fake_client):
        seen = []
        synth = SpeechSynthesizer(
            api_key="secret", config=cfg,
            client_factory=lambda key: seen.append(key) or fake_client,
        )
        synth.generate_speech("Hi", TTSConfig())
        assert seen == ["secret"]

    def test_base64_payload_is_decoded(self, synthesizer, fake_client):
        pcm = make_pcm(480)
        fake_client.models.generate_content.return_value = make_response(base64.b64encode(pcm).decode())

        result = synthesizer.generate_speech("Hi", TTSConfig())
        assert result.wav[44:] == pcm

    def test_empty_response(self, synthesizer, fake_client):
        fake_client.models.generate_content.return_value = make_response(None)
        with pytest.raises(EchoVocalError) as exc:
            synthesizer.generate_speech("Hi", TTSConfig())
        assert exc.value.kind is ErrorKind.EMPTY_RESPONSE

    def test_no_candidates(self, synthesizer, fake_client):
        fake_client.models.generate_content.return_value = make_response(b"")
        fake_client.models.generate_content.return_value.candidates = []
        with pytest.raises(EchoVocalError) as exc:
            synthesizer.generate_speech("Hi", TTSConfig())
        assert exc.value.kind is ErrorKind.EMPTY_RESPONSE


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class _CodedError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


class TestErrors:
    @pytest.mark.parametrize("message, kind", [
        ("404 NOT_FOUND. models/x is not found", ErrorKind.MODEL_UNAVAILABLE),
        ("403 PERMISSION_DENIED", ErrorKind.MODEL_UNAVAILABLE),
        ("429 RESOURCE_EXHAUSTED", ErrorKind.QUOTA_EXCEEDED),
        ("Quota exceeded for metric", ErrorKind.QUOTA_EXCEEDED),
        ("400 INVALID_ARGUMENT. API key not valid. Please pass a valid API key.", ErrorKind.INVALID_CREDENTIAL),
        ("Unsupported response modality", ErrorKind.UNSUPPORTED_MODALITY),
    ])
    def test_classify_by_message(self, message, kind):
        err = classify_error(RuntimeError(message))
        assert err is not None
        assert err.kind is kind

    def test_classify_by_status_code(self):
        err = classify_error(_CodedError(429, "Too many requests"))
        assert err.kind is ErrorKind.QUOTA_EXCEEDED

    def test_unknown_error_not_classified(self):
        assert classify_error(RuntimeError("connection reset")) is None

    def test_quota_error_prompts_for_credential(self, synthesizer, fake_client):
        fake_client.models.generate_content.side_effect = RuntimeError("429 Too Many Requests")
        with pytest.raises(EchoVocalError) as exc:
            synthesizer.generate_speech("Hi", TTSConfig())
        assert exc.value.kind is ErrorKind.QUOTA_EXCEEDED
        assert exc.value.kind.prompts_for_credential
        assert "429" in exc.value.message

    def test_unclassified_error_is_reraised(self, synthesizer, fake_client):
        boom = ConnectionError("network down")
        fake_client.models.generate_content.side_effect = boom
        with pytest.raises(ConnectionError) as exc:
            synthesizer.generate_speech("Hi", TTSConfig())
        assert exc.value is boom
