"""Local persistence of the Gemini API key.

The key lives in a small JSON file under ``echovocal_api_key``. It is stored
in plain text and never expires.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from echovocal.config import STORAGE_KEY

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read and write the API key in a JSON storage file."""

    def __init__(self, path: Path, key: str = STORAGE_KEY) -> None:
        self.path = Path(path)
        self.key = key

    def _read(self) -> dict:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable credential store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> str | None:
        """Return the stored key, or None if nothing is stored."""
        value = self._read().get(self.key)
        return value if isinstance(value, str) and value else None

    def save(self, api_key: str) -> None:
        """Persist *api_key*, keeping any other entries in the file."""
        data = self._read()
        data[self.key] = api_key
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info("API key saved to %s", self.path)
