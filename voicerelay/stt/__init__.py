# voicerelay/stt/__init__.py
# ===========================
# Speech-to-Text Layer — VoiceRelay
#
# Public API:
#   transcribe(audio_path, settings) → str | None

from voicerelay.stt.transcriber import transcribe  # noqa: F401

__all__ = ["transcribe"]
