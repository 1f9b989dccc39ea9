"""
FastAPI REST Server for EchoVocal.
==================================
Run with: python -m echovocal.api_server
         uvicorn echovocal.api_server:app --host 0.0.0.0 --port 7862

Runs alongside the Gradio UI (port 7861) on a separate port. The API key
is taken from the ``X-API-Key`` header, falling back to the server's
configured key.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from fastapi import FastAPI, File, Form, Header, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from echovocal.audio_utils import parse_wav_header
from echovocal.config import config
from echovocal.engine import SpeechSynthesizer
from echovocal.errors import EchoVocalError, ErrorKind, OversizedFileError
from echovocal.models import EMOTIONS, VOICE_LABELS, ReferenceAudio, TTSConfig, parse_voice

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Synthesizer factory (patched in tests)
# ---------------------------------------------------------------------------

def get_synthesizer(api_key: str | None) -> SpeechSynthesizer:
    """Build a synthesizer for one request."""
    return SpeechSynthesizer(api_key=api_key or config.api_key, config=config)


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.EMPTY_INPUT: 400,
    ErrorKind.UNSUPPORTED_MODALITY: 400,
    ErrorKind.MISSING_CREDENTIAL: 401,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.MODEL_UNAVAILABLE: 404,
    ErrorKind.OVERSIZED_FILE: 413,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.EMPTY_RESPONSE: 502,
    ErrorKind.DECODE_ERROR: 502,
    ErrorKind.UNCLASSIFIED: 500,
}


def api_response(
    data: Any = None,
    code: int = 200,
    error: str | None = None,
    kind: ErrorKind | None = None,
) -> dict:
    """Build a consistent API response envelope."""
    return {
        "data": data,
        "code": code,
        "error": error,
        "kind": kind.value if kind else None,
        "timestamp": int(time.time()),
    }


def error_response(code: int, message: str, kind: ErrorKind | None = None) -> JSONResponse:
    """Return a JSON error response."""
    return JSONResponse(
        status_code=code,
        content=api_response(data=None, code=code, error=message, kind=kind),
    )


def echovocal_error_response(err: EchoVocalError) -> JSONResponse:
    return error_response(_STATUS_CODES.get(err.kind, 500), err.message, err.kind)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------

class HealthInfo(BaseModel):
    """Payload of the health endpoint."""
    status: str
    tts_model: str
    native_audio_model: str
    sample_rate: int
    api_key_configured: bool


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="EchoVocal API",
    description="REST API for Gemini text-to-speech with preset, custom, and cloned voices.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:7861",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:7861",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    """Health check with model info."""
    info = HealthInfo(
        status="ok",
        tts_model=config.tts_model,
        native_audio_model=config.native_audio_model,
        sample_rate=config.sample_rate,
        api_key_configured=bool(config.api_key),
    )
    return api_response(info.model_dump())


@app.get("/v1/voices")
def list_voices() -> dict:
    """List preset voices plus the custom marker."""
    return api_response(VOICE_LABELS)


@app.get("/v1/emotions")
def list_emotions() -> dict:
    """List suggested emotion labels."""
    return api_response(EMOTIONS)


@app.post("/v1/speech", response_model=None)
async def generate_speech(
    text: str = Form(..., description="Text to speak"),
    voice: str = Form("Kore", description="Preset voice name or 'custom'"),
    emotion: str = Form("neutral"),
    speed: float = Form(1.0, ge=0.5, le=2.0),
    pitch: int = Form(0, ge=-10, le=10),
    voice_description: str = Form(""),
    reference_audio: UploadFile | None = File(None, description="Reference voice to mimic"),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> Response:
    """Generate speech and return it as a WAV file."""
    try:
        tts_voice = parse_voice(voice)
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.EMPTY_INPUT)

    reference = None
    if reference_audio is not None and reference_audio.filename:
        limit = config.max_reference_bytes
        if reference_audio.size is not None and reference_audio.size > limit:
            return echovocal_error_response(OversizedFileError(reference_audio.size, limit))
        content = await reference_audio.read()
        if len(content) > limit:
            return echovocal_error_response(OversizedFileError(len(content), limit))
        reference = ReferenceAudio(
            data=content,
            mime_type=reference_audio.content_type or "audio/mpeg",
            filename=reference_audio.filename,
        )

    tts_config = TTSConfig(
        voice=tts_voice,
        emotion=emotion,
        speed=speed,
        pitch=pitch,
        voice_description=voice_description,
        reference_audio=reference,
    )

    try:
        result = get_synthesizer(x_api_key).generate_speech(text, tts_config)
    except EchoVocalError as e:
        logger.warning("Speech generation rejected: %s", e)
        return echovocal_error_response(e)
    except Exception as e:
        logger.exception("Speech generation failed")
        return error_response(500, str(e), ErrorKind.UNCLASSIFIED)

    header = parse_wav_header(result.wav)
    filename = f"echovocal-{uuid.uuid4().hex[:8]}.wav"
    return Response(
        content=result.wav,
        media_type="audio/wav",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Audio-Duration": f"{result.duration:.2f}",
            "X-Sample-Rate": str(header.sample_rate),
            "X-Voice": result.voice,
            "X-Model": result.model,
        },
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting EchoVocal API server on port %d...", config.api_port)
    uvicorn.run(app, host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
