"""
voicerelay/tts/synthesizer.py
==============================
OpenAI Speech Synthesis Client — VoiceRelay

Responsibility:
    - Vocalize reply text with a fixed model, voice and output format
      (RelaySettings.speech_model / speech_voice / speech_format)
    - Return the raw audio bytes

This module does NOT:
    - Write audio to disk (see voicerelay/store.py)
    - Touch job state
"""

import logging

from voicerelay.config import RelaySettings
from voicerelay.openai_client import build_client

logger = logging.getLogger("voicerelay.tts.synthesizer")


class SynthesisError(Exception):
    """Raised when speech synthesis fails or yields no audio."""
    pass


def synthesize(text: str, settings: RelaySettings) -> bytes:
    """
    Convert text to speech.

    Raises:
        SynthesisError: If the provider call fails or returns empty audio.
    """
    try:
        client = build_client(settings)
        response = client.audio.speech.create(
            model=settings.speech_model,
            voice=settings.speech_voice,
            input=text,
            response_format=settings.speech_format,
        )
        audio = response.content
    except Exception as exc:
        raise SynthesisError(f"Speech synthesis failed: {exc}") from exc

    if not audio:
        raise SynthesisError("Speech synthesis returned no audio")

    logger.info("Speech synthesized: %d bytes (%s)", len(audio), settings.speech_format)
    return audio
