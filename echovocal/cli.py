"""
CLI Speech Generation.
======================
One-shot generation without the web UI.

Usage:
    # Preset voice
    echovocal-say --voice Puck --emotion cheerful "Hello world"

    # Custom voice from a description
    echovocal-say --voice custom --description "An old sailor, raspy" "Ahoy there"

    # Mimic a reference recording
    echovocal-say --reference my_voice.mp3 "This is my cloned voice" -o clone.wav

    # Common options
    --speed 1.2 --pitch -3 --api-key AIza... -o output/hello.wav
"""

from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

from echovocal.config import config
from echovocal.credentials import CredentialStore
from echovocal.engine import SpeechSynthesizer
from echovocal.errors import EchoVocalError, OversizedFileError
from echovocal.models import EMOTIONS, VOICE_LABELS, ReferenceAudio, TTSConfig, parse_voice


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EchoVocal text-to-speech CLI.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("text", help="Text to speak")
    parser.add_argument("--output", "-o", default=None, help="Output WAV file or directory")
    parser.add_argument("--voice", default="Kore",
                        help=f"Preset voice or 'custom' ({', '.join(VOICE_LABELS[:-1])})")
    parser.add_argument("--emotion", "-e", default="neutral",
                        help=f"Style / emotion (e.g. {', '.join(EMOTIONS[:4])})")
    parser.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (0.5-2.0)")
    parser.add_argument("--pitch", type=int, default=0, help="Pitch offset (-10..10)")
    parser.add_argument("--description", "-d", default="", help="Voice description / extra instructions")
    parser.add_argument("--reference", "-r", default=None, help="Reference audio file to mimic")
    parser.add_argument("--api-key", default=None, help="Gemini API key (default: stored key)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def load_reference(path: str) -> ReferenceAudio:
    ref_path = Path(path)
    size = ref_path.stat().st_size
    if size > config.max_reference_bytes:
        raise OversizedFileError(size, config.max_reference_bytes)
    return ReferenceAudio(
        data=ref_path.read_bytes(),
        mime_type=mimetypes.guess_type(ref_path.name)[0] or "audio/mpeg",
        filename=ref_path.name,
    )


def resolve_output(output: str | None, default_name: str) -> Path:
    if output is None:
        return config.output_dir / default_name
    path = Path(output)
    if path.is_dir() or output.endswith(("/", "\\")):
        return path / default_name
    return path


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    api_key = args.api_key or CredentialStore(config.storage_file).load() or config.api_key

    try:
        tts_config = TTSConfig(
            voice=parse_voice(args.voice),
            emotion=args.emotion,
            speed=args.speed,
            pitch=args.pitch,
            voice_description=args.description,
            reference_audio=load_reference(args.reference) if args.reference else None,
        )
        result = SpeechSynthesizer(api_key=api_key, config=config).generate_speech(args.text, tts_config)
    except (EchoVocalError, ValueError, OSError) as e:
        print(f"❌ {e}")
        return 1

    out_path = resolve_output(args.output, "echovocal.wav")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.wav)

    print(f"✅ {out_path}")
    print(f"🎉 {result.summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
