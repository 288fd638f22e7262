"""
voicerelay/llm/completion.py
=============================
OpenAI Chat Completion Client — VoiceRelay

Responsibility:
    - Send the transcript, verbatim, as the only message of a chat
      completion request (role RelaySettings.completion_role, "system" by default)
    - Bound the reply length with RelaySettings.max_reply_tokens
    - Return the generated reply text

Failure contract:
    Raises CompletionError on any provider failure or empty reply. The
    pipeline turns that into the "completion_failed" stage and skips
    synthesis.
"""

import logging

from voicerelay.config import RelaySettings
from voicerelay.openai_client import build_client

logger = logging.getLogger("voicerelay.llm.completion")


class CompletionError(Exception):
    """Raised when the chat completion provider cannot produce a reply."""
    pass


def _build_messages(text: str, role: str) -> list[dict[str, str]]:
    return [{"role": role, "content": text}]


def generate_reply(text: str, settings: RelaySettings) -> str:
    """
    Generate a short reply to a transcript.

    Args:
        text:     Transcript text, used as-is.
        settings: Relay settings (credential, model, length cap).

    Returns:
        The stripped reply text.

    Raises:
        CompletionError: If the provider call fails or returns no content.
    """
    try:
        client = build_client(settings)
        response = client.chat.completions.create(
            model=settings.completion_model,
            messages=_build_messages(text, settings.completion_role),
            max_tokens=settings.max_reply_tokens,
        )
    except Exception as exc:
        raise CompletionError(f"Chat completion failed: {exc}") from exc

    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError) as exc:
        raise CompletionError(f"Malformed chat completion response: {exc}") from exc

    if not content or not content.strip():
        raise CompletionError("Chat completion returned an empty reply")

    reply = content.strip()
    logger.info("Reply generated: %r", reply)
    return reply
