"""
Studio session – per-user application state.
============================================
Ties the synthesis client, the credential store, and the generation
history together for one browser session. The Gradio UI keeps one
``StudioSession`` per visitor; everything here is UI-framework agnostic.

Usage:
    session = StudioSession()
    session.load_credential()
    entry = session.generate("Hello there!")
    if entry is None:
        print(session.error)
"""

from __future__ import annotations

import logging
import mimetypes
import tempfile
from pathlib import Path

from echovocal.config import Config, config as default_config
from echovocal.credentials import CredentialStore
from echovocal.engine import SpeechSynthesizer
from echovocal.errors import EchoVocalError, ErrorKind, OversizedFileError, ValidationError
from echovocal.models import HistoryEntry, ReferenceAudio, TTSConfig, preview_text

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/mpeg"


# ---------------------------------------------------------------------------
# Playback handles
# ---------------------------------------------------------------------------

class PlaybackRegistry:
    """Owns the WAV files that back playable history entries.

    A handle is the path of a file inside a private per-session directory.
    Handles stay valid until released explicitly.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir
        self._root: Path | None = None
        self._handles: list[Path] = []

    @property
    def root(self) -> Path:
        if self._root is None:
            if self._base_dir is not None:
                self._base_dir.mkdir(parents=True, exist_ok=True)
            self._root = Path(tempfile.mkdtemp(
                prefix="echovocal-",
                dir=str(self._base_dir) if self._base_dir else None,
            ))
        return self._root

    @property
    def active(self) -> int:
        """Number of handles not yet released."""
        return len(self._handles)

    def create(self, wav: bytes, filename: str) -> Path:
        path = self.root / filename
        path.write_bytes(wav)
        self._handles.append(path)
        return path

    def release(self, handle: Path) -> None:
        handle.unlink(missing_ok=True)
        if handle in self._handles:
            self._handles.remove(handle)

    def release_all(self) -> int:
        """Release every handle and return how many were released."""
        count = 0
        for handle in list(self._handles):
            self.release(handle)
            count += 1
        if self._root is not None:
            try:
                self._root.rmdir()
            except OSError:
                logger.debug("Session directory %s not empty, keeping it.", self._root)
            else:
                self._root = None
        return count


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class StudioSession:
    """State controller for one user of the studio.

    Only one generation runs at a time: ``busy`` is set while a request is
    in flight and further calls to :meth:`generate` are turned away.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer | None = None,
        credentials: CredentialStore | None = None,
        registry: PlaybackRegistry | None = None,
        config: Config | None = None,
    ) -> None:
        self.config = config or default_config
        self.synthesizer = synthesizer or SpeechSynthesizer(config=self.config)
        self.credentials = credentials or CredentialStore(self.config.storage_file)
        self.registry = registry or PlaybackRegistry(self.config.output_dir / "sessions")

        self.tts_config = TTSConfig()
        self.history: list[HistoryEntry] = []
        self.current: HistoryEntry | None = None
        self.busy = False
        self.autoplay = False
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None
        self.show_key_prompt = False

    # -- credential ---------------------------------------------------------

    @property
    def api_key(self) -> str:
        return self.synthesizer.api_key

    def load_credential(self) -> str:
        """Load the stored API key, falling back to the configured default."""
        key = self.credentials.load() or self.config.api_key or self.synthesizer.api_key
        self.synthesizer.api_key = key
        return key

    def save_credential(self, api_key: str) -> bool:
        """Persist a new API key. Blank input is ignored."""
        key = api_key.strip()
        if not key:
            return False
        self.credentials.save(key)
        self.synthesizer.api_key = key
        self._clear_error()
        return True

    # -- reference audio ----------------------------------------------------

    @property
    def reference_name(self) -> str | None:
        ref = self.tts_config.reference_audio
        return ref.filename if ref else None

    def _check_size(self, size: int) -> None:
        if size > self.config.max_reference_bytes:
            err = OversizedFileError(size, self.config.max_reference_bytes)
            self._set_error(err)
            raise err

    def attach_reference(self, filename: str, data: bytes, mime_type: str | None = None) -> ReferenceAudio:
        """Use *data* as reference audio for the next generations."""
        self._check_size(len(data))
        ref = ReferenceAudio(
            data=data,
            mime_type=mime_type or mimetypes.guess_type(filename)[0] or DEFAULT_MIME_TYPE,
            filename=filename,
        )
        self.tts_config.reference_audio = ref
        logger.info("Reference audio attached: %s (%d bytes, %s)", filename, ref.size, ref.mime_type)
        return ref

    def attach_reference_file(self, path: str | Path, mime_type: str | None = None) -> ReferenceAudio:
        """Attach a reference file; the size is checked before reading."""
        path = Path(path)
        self._check_size(path.stat().st_size)
        return self.attach_reference(path.name, path.read_bytes(), mime_type)

    def remove_reference(self) -> None:
        self.tts_config.reference_audio = None

    # -- generation ---------------------------------------------------------

    def _set_error(self, err: EchoVocalError) -> None:
        self.error = err.message
        self.error_kind = err.kind
        self.show_key_prompt = err.kind.prompts_for_credential

    def _clear_error(self) -> None:
        self.error = None
        self.error_kind = None
        self.show_key_prompt = False

    def generate(self, text: str) -> HistoryEntry | None:
        """Generate speech for *text* with the current settings.

        Returns the new history entry, or None when nothing was generated;
        in that case ``error`` holds the message (if any).
        """
        if not text.strip():
            return None
        if self.busy:
            logger.warning("Generation already in progress, ignoring request.")
            return None

        cfg = self.tts_config
        self._clear_error()
        if cfg.is_custom and not cfg.voice_description.strip() and not cfg.has_reference:
            self._set_error(ValidationError(
                "Please enter a voice description or upload reference audio for custom mode."
            ))
            return None

        self.busy = True
        self.autoplay = False
        try:
            result = self.synthesizer.generate_speech(text, cfg)
        except EchoVocalError as e:
            self._set_error(e)
            return None
        except ValueError as e:
            # Out-of-range speed or pitch
            self._set_error(ValidationError(str(e)))
            return None
        except Exception as e:
            logger.exception("Unexpected error during speech generation")
            self.error = str(e) or "Failed to generate audio. Please try again."
            self.error_kind = ErrorKind.UNCLASSIFIED
            return None
        finally:
            self.busy = False

        entry = HistoryEntry(text=preview_text(text), config=cfg.snapshot(), result=result)
        entry.handle = self.registry.create(result.wav, entry.download_name)
        self.history.insert(0, entry)
        self.current = entry
        self.autoplay = True
        return entry

    # -- history ------------------------------------------------------------

    def get(self, entry_id: str) -> HistoryEntry:
        for entry in self.history:
            if entry.id == entry_id:
                return entry
        raise KeyError(entry_id)

    def select(self, entry_id: str) -> HistoryEntry:
        """Make a history entry current and play it."""
        entry = self.get(entry_id)
        self.current = entry
        self.autoplay = True
        return entry

    def clear_history(self) -> int:
        """Release all playback handles and empty the history."""
        released = self.registry.release_all()
        self.history.clear()
        self.current = None
        logger.info("History cleared (%d clips released).", released)
        return released

    def close(self) -> None:
        """Release everything held by the session."""
        self.clear_history()
