"""
voicerelay/api/app.py
======================
HTTP Gateway — VoiceRelay

Responsibility:
    - POST /uploadAudio      stream raw audio to the job's recording slot,
                             transcribe it, answer with the transcript and
                             queue the reply pipeline
    - GET  /                 liveness greeting
    - GET  /checkVariable    {"ready": bool} for the latest (or named) job
    - GET  /broadcastAudio   stream the latest ready (or named) reply
    - GET  /jobs/{job_id}        full job record
    - GET  /jobs/{job_id}/audio  stream the reply of one job

The upload response only carries the transcript (plus the job id in the
X-Job-Id header). The final outcome is learned by polling or through
the webhook.

This module does NOT:
    - Call providers directly (see voicerelay/pipeline.py)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Iterator

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from voicerelay.config import RelaySettings, get_settings
from voicerelay.jobs import Job, JobRegistry, JobStage
from voicerelay.notifier import notify_job_finished
from voicerelay.pipeline import PipelineWorker, transcribe_job
from voicerelay.store import FileStore

logger = logging.getLogger("voicerelay.api")

JOB_ID_HEADER = "X-Job-Id"
STREAM_CHUNK_SIZE = 64 * 1024

_MEDIA_TYPES: dict[str, str] = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "flac": "audio/flac",
    "opus": "audio/opus",
    "aac": "audio/aac",
}


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    """Build the gateway application around one store, registry and worker."""
    settings = settings or get_settings()
    store = FileStore(settings.resources_dir)
    jobs = JobRegistry(store, max_retained=settings.max_retained_jobs)
    worker = PipelineWorker(store, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.resources_dir.mkdir(parents=True, exist_ok=True)
        await worker.start()
        logger.info("VoiceRelay ready — resources at %s", settings.resources_dir)
        yield
        await worker.stop()

    app = FastAPI(
        title="VoiceRelay",
        description="Upload speech, get a transcript now and a spoken reply later.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.jobs = jobs
    app.state.worker = worker

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[JOB_ID_HEADER],
    )

    _register_routes(app)
    return app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _lookup_job(request: Request, job_id: str) -> Job:
    job = request.app.state.jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_id}")
    return job


def _stream_reply(request: Request, job: Job | None) -> StreamingResponse:
    """
    Stream a job's reply audio.

    Every check that can fail is done before the response starts, so a
    500 is only ever sent while headers are still unsent. A read error
    after that point is logged and ends the stream early.
    """
    store: FileStore = request.app.state.store
    settings: RelaySettings = request.app.state.settings

    if job is None or not job.ready:
        logger.warning("Reply requested but no synthesized audio is ready")
        raise HTTPException(status_code=404, detail="No synthesized audio available")

    path = store.reply_path(job.job_id)
    try:
        size = path.stat().st_size
        handle = open(path, "rb")
    except FileNotFoundError:
        logger.error("Reply file missing for job %s", job.job_id)
        raise HTTPException(status_code=404, detail="No synthesized audio available")
    except OSError as exc:
        logger.error("Error opening reply file for job %s: %s", job.job_id, exc)
        raise HTTPException(status_code=500, detail="Could not read synthesized audio")

    def iter_file() -> Iterator[bytes]:
        with handle:
            try:
                for chunk in iter(lambda: handle.read(STREAM_CHUNK_SIZE), b""):
                    yield chunk
            except OSError as exc:
                logger.error("Error reading reply file for job %s: %s", job.job_id, exc)

    return StreamingResponse(
        iter_file(),
        media_type=_MEDIA_TYPES.get(settings.speech_format, "audio/wav"),
        headers={"Content-Length": str(size), JOB_ID_HEADER: job.job_id},
    )


async def _receive_recording(request: Request, store: FileStore, job_id: str) -> int:
    """
    Stream the request body into the job's recording slot.

    File operations run in worker threads so a slow disk never stalls the
    event loop.

    Returns:
        Number of bytes written.

    Raises:
        ClientDisconnect: If the client goes away before the body ends.
        OSError:          If the recording cannot be written.
    """
    received = 0
    recording = await asyncio.to_thread(store.open_recording, job_id)
    try:
        async for chunk in request.stream():
            if chunk:
                await asyncio.to_thread(recording.write, chunk)
                received += len(chunk)
    finally:
        await asyncio.to_thread(recording.close)
    return received


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _register_routes(app: FastAPI) -> None:

    @app.post("/uploadAudio", response_class=PlainTextResponse)
    async def upload_audio(request: Request, background_tasks: BackgroundTasks):
        """
        Accept a raw audio body, transcribe it and queue the reply.

        Returns the transcript as text/plain (empty when transcription
        failed), with the job id in the X-Job-Id header.
        """
        state = request.app.state
        job: Job = await state.jobs.create()

        try:
            received = await _receive_recording(request, state.store, job.job_id)
        except ClientDisconnect:
            logger.warning("Job %s: client disconnected during upload", job.job_id)
            job.fail(JobStage.TRANSCRIPTION_FAILED, "Client disconnected during upload")
            await asyncio.to_thread(state.store.discard, job.job_id)
            raise HTTPException(status_code=400, detail="Upload interrupted.")
        except OSError as exc:
            logger.error("Job %s: failed to store recording: %s", job.job_id, exc)
            job.fail(JobStage.TRANSCRIPTION_FAILED, f"Failed to store recording: {exc}")
            raise HTTPException(status_code=500, detail="Failed to store recording.")

        logger.info("Job %s: recording received (%.2f KB)", job.job_id, received / 1024)

        transcript = await transcribe_job(job, state.store, state.settings)
        if transcript is None:
            background_tasks.add_task(notify_job_finished, job, state.settings)
        else:
            await state.worker.enqueue(job)

        return PlainTextResponse(transcript or "", headers={JOB_ID_HEADER: job.job_id})

    @app.get("/", response_class=PlainTextResponse)
    async def hello():
        return "Hello World"

    @app.get("/checkVariable")
    async def check_variable(request: Request, job_id: str | None = Query(default=None)):
        if job_id is not None:
            job = _lookup_job(request, job_id)
        else:
            job = request.app.state.jobs.latest()
        return JSONResponse({"ready": bool(job and job.ready)})

    @app.get("/broadcastAudio")
    async def broadcast_audio(request: Request, job_id: str | None = Query(default=None)):
        if job_id is not None:
            job = _lookup_job(request, job_id)
        else:
            job = request.app.state.jobs.latest_ready()
        return _stream_reply(request, job)

    @app.get("/jobs/{job_id}")
    async def get_job(request: Request, job_id: str):
        return JSONResponse(_lookup_job(request, job_id).to_dict())

    @app.get("/jobs/{job_id}/audio")
    async def get_job_audio(request: Request, job_id: str):
        return _stream_reply(request, _lookup_job(request, job_id))


app = create_app()
