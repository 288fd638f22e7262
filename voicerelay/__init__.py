# voicerelay/__init__.py
# =======================
# VoiceRelay — upload → transcribe → reply → speak relay service
#
# Layers:
#   - voicerelay/api/    HTTP gateway (FastAPI)
#   - voicerelay/stt/    speech-to-text client
#   - voicerelay/llm/    chat-completion client
#   - voicerelay/tts/    text-to-speech client
#   - voicerelay/pipeline.py  background reply pipeline
