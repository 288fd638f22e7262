"""
voicerelay/stt/transcriber.py
==============================
OpenAI Whisper Transcription Client — VoiceRelay

Responsibility:
    - Send one recorded audio file to the OpenAI transcription endpoint
    - Request a plain-text response
    - Return the transcript, or None when transcription is unavailable

Failure contract:
    Any failure (missing credential, network error, provider error,
    unexpected response shape) is logged and reported as None. The
    caller treats None as "transcription unavailable" and never crashes
    the request on it.

This module does NOT:
    - Generate replies or synthesize speech
    - Decide what happens after a failed transcription
"""

import logging
from pathlib import Path

from voicerelay.config import RelaySettings
from voicerelay.openai_client import build_client

logger = logging.getLogger("voicerelay.stt.transcriber")


def transcribe(audio_path: Path, settings: RelaySettings) -> str | None:
    """
    Transcribe an audio file to plain text.

    Args:
        audio_path: Path to the recorded audio (any format Whisper accepts).
        settings:   Relay settings (credential, model, timeout).

    Returns:
        The stripped transcript text, which may be empty for silent
        audio, or None if the provider call failed.
    """
    try:
        client = build_client(settings)
        with open(audio_path, "rb") as audio_file:
            response = client.audio.transcriptions.create(
                model=settings.transcription_model,
                file=audio_file,
                response_format="text",
            )
    except Exception as exc:
        logger.error("Transcription failed for %s: %s", audio_path, exc)
        return None

    # response_format="text" yields a bare string; older SDKs wrap it
    text = response if isinstance(response, str) else getattr(response, "text", None)
    if not isinstance(text, str):
        logger.error(
            "Transcription returned an unexpected payload: %s",
            type(response).__name__,
        )
        return None

    text = text.strip()
    logger.info("Transcription: %r", text)
    return text
