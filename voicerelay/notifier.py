"""
voicerelay/notifier.py
=======================
Terminal job notification — VoiceRelay

POSTs the final job record to WEBHOOK_URL (if configured) once a job
reaches a terminal stage. Delivery failures are logged and otherwise
ignored; they never change the job.
"""

import logging

import aiohttp

from voicerelay.config import RelaySettings
from voicerelay.jobs import Job

logger = logging.getLogger("voicerelay.notifier")

WEBHOOK_TIMEOUT_SECONDS = 30


async def notify_job_finished(job: Job, settings: RelaySettings) -> bool:
    """
    Send the job record to the configured webhook.

    Returns:
        True if the webhook answered with a 2xx status, False otherwise
        (including when no webhook is configured).
    """
    if not settings.webhook_url:
        logger.debug("WEBHOOK_URL not configured — skipping POST.")
        return False

    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                settings.webhook_url,
                json=job.to_dict(),
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT_SECONDS),
            ) as resp:
                logger.info(
                    "Webhook POST to %s for job %s — status %d",
                    settings.webhook_url, job.job_id, resp.status,
                )
                return 200 <= resp.status < 300
    except Exception as exc:
        logger.error("Webhook POST failed for job %s: %s", job.job_id, exc)
        return False
