"""
voicerelay/config.py
=====================
Runtime configuration — VoiceRelay

Responsibility:
    - Load .env into the process environment
    - Fold environment variables into a single RelaySettings object
    - Provide one cached settings instance for the running process

This module does NOT:
    - Validate provider credentials (a missing key surfaces as a
      provider-call error inside the clients)
    - Create directories or clients
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _split_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


@dataclass
class RelaySettings:
    host: str = "0.0.0.0"
    port: int = 3000

    openai_api_key: str | None = None
    request_timeout_seconds: float = 30.0

    transcription_model: str = "whisper-1"
    completion_model: str = "gpt-3.5-turbo"
    # Role the transcript is sent under as the only chat message
    completion_role: str = "system"
    # Upper bound on the generated reply length
    max_reply_tokens: int = 30

    speech_model: str = "tts-1"
    speech_voice: str = "echo"
    speech_format: str = "wav"

    resources_dir: Path = field(default_factory=lambda: Path("resources").resolve())
    max_retained_jobs: int = 20

    webhook_url: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Construct from os.environ with sensible defaults."""

        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            request_timeout_seconds=float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30")),
            transcription_model=os.getenv("TRANSCRIPTION_MODEL", "whisper-1"),
            completion_model=os.getenv("COMPLETION_MODEL", "gpt-3.5-turbo"),
            completion_role=os.getenv("COMPLETION_ROLE", "system"),
            max_reply_tokens=int(os.getenv("MAX_REPLY_TOKENS", "30")),
            speech_model=os.getenv("SPEECH_MODEL", "tts-1"),
            speech_voice=os.getenv("SPEECH_VOICE", "echo"),
            speech_format=os.getenv("SPEECH_FORMAT", "wav"),
            resources_dir=Path(os.getenv("RESOURCES_DIR", "resources")).resolve(),
            max_retained_jobs=int(os.getenv("MAX_RETAINED_JOBS", "20")),
            webhook_url=os.getenv("WEBHOOK_URL") or None,
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
        )


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    return RelaySettings.from_env()


__all__ = ["RelaySettings", "get_settings"]
