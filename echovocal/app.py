"""
EchoVocal Gradio App.
=====================
Web interface for text-to-speech with preset voices, voice descriptions
and reference-audio cloning, backed by the Gemini speech API.

Run with: python -m echovocal.app
Then open: http://127.0.0.1:7861
"""

from __future__ import annotations

import logging

import gradio as gr

from echovocal.config import config
from echovocal.errors import EchoVocalError
from echovocal.models import EMOTIONS, VOICE_LABELS, CustomVoice, HistoryEntry, parse_voice
from echovocal.session import StudioSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HISTORY_HEADERS = ["Time", "Voice", "Text"]
API_KEY_URL = "https://aistudio.google.com/app/apikey"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def new_session() -> StudioSession:
    """Create the state of a new visitor, with the stored API key loaded."""
    session = StudioSession()
    session.load_credential()
    return session


def close_session(session: StudioSession) -> None:
    session.close()


def key_status(session: StudioSession) -> str:
    return "🔑 API key active" if session.api_key else "⚠️ No API key set"


def history_rows(session: StudioSession) -> list[list[str]]:
    return [
        [entry.created_at.strftime("%H:%M:%S"), entry.label, entry.text]
        for entry in session.history
    ]


def format_entry(entry: HistoryEntry) -> str:
    """Format a history entry as status text."""
    return "\n".join([
        f"✅ {entry.download_name}",
        f"⏱️ {entry.result.summary}",
        f"📝 {entry.text}",
    ])


def _player(session: StudioSession) -> tuple[str | None, str | None]:
    if session.current is None:
        return None, None
    path = str(session.current.handle)
    return path, path


# ---------------------------------------------------------------------------
# API key
# ---------------------------------------------------------------------------

def save_api_key(session: StudioSession, api_key: str):
    """Store a new API key and collapse the key panel."""
    if not session.save_credential(api_key or ""):
        return key_status(session), gr.update(open=True), "❌ Please enter an API key!"
    return key_status(session), gr.update(open=False), "✅ API key saved."


# ---------------------------------------------------------------------------
# Reference audio
# ---------------------------------------------------------------------------

def attach_reference(session: StudioSession, path: str | None) -> str:
    """Attach (or remove, when *path* is None) the reference recording."""
    if path is None:
        session.remove_reference()
        return "No reference audio."
    try:
        ref = session.attach_reference_file(path)
    except EchoVocalError as e:
        return f"❌ {e}"
    return f"🎙️ {ref.filename} ({ref.size / 1024:.0f} KB) – voice clone mode"


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate(
    session: StudioSession,
    text: str,
    voice_label: str,
    emotion: str,
    speed: float,
    pitch: float,
    voice_description: str,
    progress: gr.Progress = gr.Progress(),
):
    """Main generation callback.

    Returns (audio, download, status, history, key panel).
    """
    if not text or not text.strip():
        return None, None, "❌ Please enter some text!", history_rows(session), gr.update()

    cfg = session.tts_config
    cfg.voice = parse_voice(voice_label)
    cfg.emotion = emotion
    cfg.speed = float(speed)
    cfg.pitch = int(pitch)
    cfg.voice_description = voice_description or ""

    progress(0, "Cloning voice..." if cfg.has_reference else "Generating audio...")
    entry = session.generate(text)
    progress(1.0, "Done!")

    if entry is None:
        status = f"❌ {session.error}" if session.error else "⏳ A generation is already running."
        audio, download = _player(session)
        return audio, download, status, history_rows(session), gr.update(open=session.show_key_prompt)

    audio, download = _player(session)
    return audio, download, format_entry(entry), history_rows(session), gr.update()


def select_history(session: StudioSession, evt: gr.SelectData):
    """Play a clip picked from the history table."""
    row = evt.index[0] if isinstance(evt.index, (list, tuple)) else evt.index
    if row is None or row >= len(session.history):
        return None, None, ""
    entry = session.select(session.history[row].id)
    audio, download = _player(session)
    return audio, download, format_entry(entry)


def clear_history(session: StudioSession):
    released = session.clear_history()
    return None, None, f"🗑️ Cleared {released} clip(s).", history_rows(session)


def toggle_description(voice_label: str):
    """Highlight the description box in custom mode."""
    custom = isinstance(parse_voice(voice_label), CustomVoice)
    return gr.update(
        label="Voice description (required)" if custom else "Voice description / extra instructions",
    )


# ---------------------------------------------------------------------------
# Build UI
# ---------------------------------------------------------------------------

def build_app() -> gr.Blocks:
    """Build the Gradio interface."""

    with gr.Blocks(title="EchoVocal", theme=gr.themes.Soft()) as demo:
        session = gr.State(new_session, delete_callback=close_session)

        gr.Markdown("# 🌊 EchoVocal")
        gr.Markdown("Next-generation voice cloning & customization.")

        # ── API key ───────────────────────────────────────────────────────
        key_label = gr.Markdown()
        with gr.Accordion("🔑 API key settings", open=False) as key_panel:
            gr.Markdown(
                "Enter your Google Gemini (AI Studio) API key. "
                f"It is stored locally. [Get a free API key]({API_KEY_URL})"
            )
            with gr.Row():
                key_input = gr.Textbox(
                    label="Google Gemini API key",
                    type="password",
                    placeholder="AIzaSy...",
                    scale=4,
                )
                key_save_btn = gr.Button("Save key", variant="primary", scale=1)
            key_message = gr.Markdown()

        with gr.Row():
            # ── Input & controls ─────────────────────────────────────────
            with gr.Column(scale=2):
                text_input = gr.Textbox(
                    label="Text",
                    placeholder="Type the words you want to turn into speech...",
                    lines=6,
                )

                with gr.Row():
                    voice_dropdown = gr.Dropdown(
                        choices=VOICE_LABELS,
                        value=VOICE_LABELS[0],
                        label="Base voice",
                    )
                    emotion_dropdown = gr.Dropdown(
                        choices=EMOTIONS,
                        value="neutral",
                        label="Style / emotion",
                    )

                with gr.Row():
                    speed_slider = gr.Slider(0.5, 2.0, value=1.0, step=0.1, label="Speed")
                    pitch_slider = gr.Slider(-10, 10, value=0, step=1, label="Pitch")

                description_input = gr.Textbox(
                    label="Voice description / extra instructions",
                    placeholder="e.g. a child's voice, a strong regional accent...",
                    lines=2,
                )

                reference_upload = gr.File(
                    label=f"Reference voice (clone, max {config.max_reference_bytes // (1024 * 1024)} MB)",
                    file_types=["audio"],
                    type="filepath",
                )
                reference_status = gr.Markdown("No reference audio.")

                generate_btn = gr.Button("🎙️ Generate audio", variant="primary", size="lg")

            # ── Player & history ─────────────────────────────────────────
            with gr.Column(scale=1):
                audio_out = gr.Audio(label="Player", type="filepath", autoplay=True, interactive=False)
                file_out = gr.File(label="Download")
                status = gr.Textbox(label="Status", lines=4, interactive=False)

                history_table = gr.Dataframe(
                    headers=HISTORY_HEADERS,
                    value=[],
                    label="History",
                    interactive=False,
                    wrap=True,
                )
                clear_btn = gr.Button("🗑️ Clear history", size="sm")

        # Events
        demo.load(fn=key_status, inputs=session, outputs=key_label)
        key_save_btn.click(
            fn=save_api_key,
            inputs=[session, key_input],
            outputs=[key_label, key_panel, key_message],
        )
        voice_dropdown.change(
            fn=toggle_description,
            inputs=voice_dropdown,
            outputs=description_input,
        )
        reference_upload.change(
            fn=attach_reference,
            inputs=[session, reference_upload],
            outputs=reference_status,
        )
        generate_btn.click(
            fn=generate,
            inputs=[
                session, text_input, voice_dropdown, emotion_dropdown,
                speed_slider, pitch_slider, description_input,
            ],
            outputs=[audio_out, file_out, status, history_table, key_panel],
            concurrency_limit=1,
        )
        history_table.select(
            fn=select_history,
            inputs=session,
            outputs=[audio_out, file_out, status],
        )
        clear_btn.click(
            fn=clear_history,
            inputs=session,
            outputs=[audio_out, file_out, status, history_table],
        )

        # ── Footer ────────────────────────────────────────────────────────
        gr.Markdown(
            "<center><sub>"
            "EchoVocal preview · AI voice cloning enabled · "
            f"Models: `{config.tts_model}` / `{config.native_audio_model}`"
            "</sub></center>"
        )

    return demo


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config.ensure_dirs()
    app = build_app()
    app.launch(
        server_name=config.gradio_host,
        server_port=config.gradio_port,
        allowed_paths=[str(config.output_dir)],
    )


if __name__ == "__main__":
    main()
