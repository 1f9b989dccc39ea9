"""Error types for EchoVocal.

Every failure surfaced to the user carries an ``ErrorKind`` so the UI and
REST layers can decide how to present it without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """User-facing failure categories."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    MODEL_UNAVAILABLE = "model_unavailable"
    UNSUPPORTED_MODALITY = "unsupported_modality"
    EMPTY_INPUT = "empty_input"
    EMPTY_RESPONSE = "empty_response"
    DECODE_ERROR = "decode_error"
    OVERSIZED_FILE = "oversized_file"
    UNCLASSIFIED = "unclassified"

    @property
    def prompts_for_credential(self) -> bool:
        """Whether the UI should ask the user for a (new) API key."""
        return self in (
            ErrorKind.MISSING_CREDENTIAL,
            ErrorKind.INVALID_CREDENTIAL,
            ErrorKind.QUOTA_EXCEEDED,
        )


class EchoVocalError(RuntimeError):
    """Base exception for classified EchoVocal failures."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(EchoVocalError):
    """Raised when a request is rejected before dispatch."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.EMPTY_INPUT) -> None:
        super().__init__(kind, message)


class DecodeError(EchoVocalError):
    """Raised when audio payloads cannot be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.DECODE_ERROR, message)


class OversizedFileError(EchoVocalError):
    """Raised when a reference audio upload exceeds the size limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            ErrorKind.OVERSIZED_FILE,
            f"File too large ({size / 1024 / 1024:.1f} MB). "
            f"Maximum is {limit // (1024 * 1024)} MB.",
        )
        self.size = size
        self.limit = limit


__all__ = [
    "DecodeError",
    "EchoVocalError",
    "ErrorKind",
    "OversizedFileError",
    "ValidationError",
]
