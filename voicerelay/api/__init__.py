# voicerelay/api/__init__.py
# ===========================
# API Layer — VoiceRelay
#
#   - POST /uploadAudio, GET /, GET /checkVariable, GET /broadcastAudio
#   - GET /jobs/{job_id}, GET /jobs/{job_id}/audio
