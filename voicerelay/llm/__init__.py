# voicerelay/llm/__init__.py
# ===========================
# Chat Completion Layer — VoiceRelay
#
# Public API:
#   generate_reply(text, settings) → str   (raises CompletionError)

from voicerelay.llm.completion import CompletionError, generate_reply  # noqa: F401

__all__ = ["CompletionError", "generate_reply"]
