"""
Audio utility functions.
========================
Base64 decoding, raw PCM decoding, and WAV container encoding.
Pure and synchronous: nothing here touches the network or the disk.
"""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass

import numpy as np

from echovocal.errors import DecodeError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TARGET_SAMPLE_RATE = 24000  # Gemini speech output sample rate
BYTES_PER_SAMPLE = 2
WAV_HEADER_SIZE = 44
PCM_FORMAT = 1

_INT16_SCALE = 32768.0
_SUBTYPE_BITS = {"PCM_U8": 8, "PCM_16": 16, "PCM_24": 24, "PCM_32": 32, "FLOAT": 32, "DOUBLE": 64}


# ---------------------------------------------------------------------------
# Sample buffer
# ---------------------------------------------------------------------------

@dataclass
class SampleBuffer:
    """Decoded multi-channel audio.

    ``samples`` is a float32 array shaped ``(channels, frames)`` with values
    in ``[-1.0, 1.0]``.
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def number_of_channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def length(self) -> int:
        """Number of frames (samples per channel)."""
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.length / self.sample_rate if self.sample_rate > 0 else 0.0

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]


@dataclass(frozen=True)
class WavHeader:
    """Format fields of a WAV file."""

    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode_base64(text: str | bytes) -> bytes:
    """Decode standard base64 text into raw bytes.

    Raises
    ------
    DecodeError
        If the input is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e


def decode_pcm_to_audio_buffer(
    data: bytes,
    sample_rate: int = TARGET_SAMPLE_RATE,
    channel_count: int = 1,
) -> SampleBuffer:
    """Interpret raw bytes as interleaved signed 16-bit little-endian PCM.

    Parameters
    ----------
    data : bytes
        Raw PCM bytes.
    sample_rate : int
        Sample rate stamped onto the result (no resampling is done).
    channel_count : int
        Number of interleaved channels.

    Returns
    -------
    SampleBuffer
        ``channel_count`` channels of ``len(data) // 2 // channel_count``
        frames each. Bytes that do not complete a frame are dropped.
    """
    if channel_count < 1:
        raise DecodeError(f"Invalid channel count: {channel_count}")
    if sample_rate <= 0:
        raise DecodeError(f"Invalid sample rate: {sample_rate}")

    frames = len(data) // BYTES_PER_SAMPLE // channel_count
    usable = frames * channel_count * BYTES_PER_SAMPLE

    # Trailing partial frame is dropped
    pcm = np.frombuffer(bytes(data[:usable]), dtype="<i2")
    samples = (pcm.astype(np.float32) / _INT16_SCALE).reshape(frames, channel_count).T
    return SampleBuffer(samples=np.ascontiguousarray(samples), sample_rate=sample_rate)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def audio_buffer_to_wav_bytes(buffer: SampleBuffer) -> bytes:
    """Serialize a SampleBuffer into an uncompressed 16-bit PCM WAV blob.

    Channels are interleaved in their original order. Float samples are
    scaled by 32768 and clipped to the int16 range, which makes a
    decode/encode round trip lossless.
    """
    import soundfile as sf

    scaled = np.round(buffer.samples.astype(np.float64) * _INT16_SCALE)
    pcm = np.clip(scaled, -32768, 32767).astype(np.int16)

    out = io.BytesIO()
    sf.write(out, pcm.T, buffer.sample_rate, format="WAV", subtype="PCM_16")
    return out.getvalue()


def pcm_to_wav(
    data: bytes,
    sample_rate: int = TARGET_SAMPLE_RATE,
    channels: int = 1,
) -> tuple[bytes, SampleBuffer]:
    """Decode raw PCM and wrap it in a WAV container.

    Returns the WAV blob together with the decoded buffer.
    """
    buffer = decode_pcm_to_audio_buffer(data, sample_rate, channels)
    return audio_buffer_to_wav_bytes(buffer), buffer


def parse_wav_header(blob: bytes) -> WavHeader:
    """Read the format fields of a WAV blob."""
    import soundfile as sf

    if len(blob) < WAV_HEADER_SIZE:
        raise DecodeError("WAV data shorter than header")

    try:
        info = sf.info(io.BytesIO(blob))
    except RuntimeError as e:
        raise DecodeError(f"Not a readable WAV file: {e}") from e

    if info.format != "WAV":
        raise DecodeError(f"Not a WAV file: {info.format}")

    bits = _SUBTYPE_BITS.get(info.subtype, 0)
    block_align = info.channels * bits // 8
    return WavHeader(
        audio_format=PCM_FORMAT if info.subtype.startswith("PCM") else 0,
        channels=info.channels,
        sample_rate=info.samplerate,
        byte_rate=info.samplerate * block_align,
        block_align=block_align,
        bits_per_sample=bits,
        data_size=info.frames * block_align,
    )
