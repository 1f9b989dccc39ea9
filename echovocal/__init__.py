"""EchoVocal – Gemini text-to-speech studio with voice cloning."""

__version__ = "0.2.0"
