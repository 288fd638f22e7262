"""
main.py
========
Central entry point for the VoiceRelay service.

Run with:
    uvicorn main:app --port 3000
or:
    python main.py
"""

import logging

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Keep OpenAI SDK / HTTP transport chatter out of the relay logs.
for _transport_logger_name in (
    "openai",
    "openai._base_client",
    "httpx",
    "httpcore",
):
    logging.getLogger(_transport_logger_name).setLevel(logging.WARNING)

from voicerelay.api.app import app  # noqa: F401, E402
from voicerelay.config import get_settings  # noqa: E402

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.getLogger("voicerelay").info(
        "Server running at http://localhost:%d/", settings.port,
    )
    uvicorn.run("main:app", host=settings.host, port=settings.port)
