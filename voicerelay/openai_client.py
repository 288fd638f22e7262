"""
voicerelay/openai_client.py
============================
Shared OpenAI client factory — VoiceRelay

Provides one place where the ``openai.OpenAI`` client is configured for
every provider call in the relay (transcription, chat completion,
speech synthesis):

    - bearer credential from RelaySettings.openai_api_key
    - per-request timeout (RelaySettings.request_timeout_seconds)
    - no automatic retries; a failed call fails the pipeline stage

This module does NOT:
    - Call any provider endpoint itself
    - Catch or translate provider errors
"""

import logging

from openai import OpenAI

from voicerelay.config import RelaySettings

logger = logging.getLogger("voicerelay.openai_client")

MAX_RETRIES: int = 0


def build_client(settings: RelaySettings) -> OpenAI:
    """
    Build an OpenAI client from relay settings.

    The SDK raises ``openai.OpenAIError`` at construction time when no
    credential is available; callers treat that like any other provider
    failure.
    """
    logger.debug(
        "Building OpenAI client (timeout=%.1fs, retries=%d)",
        settings.request_timeout_seconds,
        MAX_RETRIES,
    )
    return OpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.request_timeout_seconds,
        max_retries=MAX_RETRIES,
    )
