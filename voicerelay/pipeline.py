"""
voicerelay/pipeline.py
=======================
Reply Pipeline Orchestrator — VoiceRelay

Stage order for one job (fixed, never reordered):
    1. transcribe     recording file  → transcript     (synchronous to upload)
    2. generate       transcript      → reply text     (background)
    3. synthesize     reply text      → reply audio    (background)
    4. persist        reply audio     → reply slot, job becomes READY

Step 1 runs inside the upload request so its transcript can be returned
to the caller. Steps 2-4 run on a background task queue consumed by a
single worker, so jobs finish in the order they were accepted.

A failing stage ends the job in its tagged failure stage and skips every
later stage. Replies of earlier jobs are never touched by a failure.

This layer MUST NOT:
    - Talk to the provider directly (see stt/, llm/, tts/)
    - Send HTTP responses
"""

import asyncio
import logging

from voicerelay.config import RelaySettings
from voicerelay.jobs import Job, JobStage
from voicerelay.llm.completion import CompletionError, generate_reply
from voicerelay.notifier import notify_job_finished
from voicerelay.store import FileStore
from voicerelay.stt.transcriber import transcribe
from voicerelay.tts.synthesizer import SynthesisError, synthesize

logger = logging.getLogger("voicerelay.pipeline")

# Failure stage to report when a job dies unexpectedly in a given stage
_FAILURE_FOR_STAGE: dict[JobStage, JobStage] = {
    JobStage.TRANSCRIBING: JobStage.TRANSCRIPTION_FAILED,
    JobStage.GENERATING: JobStage.COMPLETION_FAILED,
    JobStage.SYNTHESIZING: JobStage.SYNTHESIS_FAILED,
}


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


async def transcribe_job(job: Job, store: FileStore, settings: RelaySettings) -> str | None:
    """
    Transcribe the recording of a job.

    Returns:
        The transcript, or None when transcription failed or produced no
        text. In that case the job is already terminal
        (TRANSCRIPTION_FAILED) and must not be enqueued.
    """
    job.advance(JobStage.TRANSCRIBING)
    text = await asyncio.to_thread(transcribe, store.recording_path(job.job_id), settings)

    if text is None:
        job.fail(JobStage.TRANSCRIPTION_FAILED, "Transcription unavailable")
        return None
    if not text:
        logger.warning("Job %s: empty transcript — skipping reply generation", job.job_id)
        job.fail(JobStage.TRANSCRIPTION_FAILED, "Transcript is empty")
        return None

    job.transcript = text
    return text


async def run_reply_stage(job: Job, store: FileStore, settings: RelaySettings) -> Job:
    """
    Generate, synthesize and persist the reply for a transcribed job.

    Always returns the job in a terminal stage; never raises for
    provider or disk failures.
    """
    if job.transcript is None:
        job.fail(JobStage.TRANSCRIPTION_FAILED, "No transcript to reply to")
        return job

    # --- generate ---
    job.advance(JobStage.GENERATING)
    try:
        job.reply_text = await asyncio.to_thread(generate_reply, job.transcript, settings)
    except CompletionError as exc:
        logger.error("Job %s: %s", job.job_id, exc)
        job.fail(JobStage.COMPLETION_FAILED, str(exc))
        return job

    # --- synthesize ---
    job.advance(JobStage.SYNTHESIZING)
    try:
        audio = await asyncio.to_thread(synthesize, job.reply_text, settings)
    except SynthesisError as exc:
        logger.error("Job %s: %s", job.job_id, exc)
        job.fail(JobStage.SYNTHESIS_FAILED, str(exc))
        return job

    # --- persist ---
    try:
        await asyncio.to_thread(store.write_reply, job.job_id, audio)
    except OSError as exc:
        logger.error("Job %s: could not save reply audio: %s", job.job_id, exc)
        job.fail(JobStage.SYNTHESIS_FAILED, f"Could not save reply audio: {exc}")
        return job

    job.advance(JobStage.READY)
    return job


# ---------------------------------------------------------------------------
# Background queue
# ---------------------------------------------------------------------------


class PipelineWorker:
    """
    Single-consumer task queue for the background part of the pipeline.

    Started and stopped by the application lifespan.
    """

    def __init__(self, store: FileStore, settings: RelaySettings):
        self.store = store
        self.settings = settings
        self._queue: asyncio.Queue[Job] | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(
            self._consume(self._queue), name="voicerelay-pipeline",
        )
        logger.info("Pipeline worker started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Pipeline worker stopped")

    async def enqueue(self, job: Job) -> None:
        if self._queue is None:
            raise RuntimeError("Pipeline worker is not running")
        await self._queue.put(job)
        logger.info("Job %s queued (%d waiting)", job.job_id, self._queue.qsize())

    async def drain(self) -> None:
        """Wait until every queued job has reached a terminal stage."""
        if self._queue is not None:
            await self._queue.join()

    async def _consume(self, queue: "asyncio.Queue[Job]") -> None:
        while True:
            job = await queue.get()
            try:
                await run_reply_stage(job, self.store, self.settings)
            except Exception:
                logger.exception("Job %s: unexpected pipeline error", job.job_id)
                if not job.terminal:
                    job.fail(_FAILURE_FOR_STAGE.get(job.stage, JobStage.SYNTHESIS_FAILED),
                             "Unexpected pipeline error")
            finally:
                try:
                    if job.terminal:
                        await notify_job_finished(job, self.settings)
                finally:
                    queue.task_done()
