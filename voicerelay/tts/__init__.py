# voicerelay/tts/__init__.py
# ===========================
# Text-to-Speech Layer — VoiceRelay
#
# Public API:
#   synthesize(text, settings) → bytes   (raises SynthesisError)

from voicerelay.tts.synthesizer import SynthesisError, synthesize  # noqa: F401

__all__ = ["SynthesisError", "synthesize"]
