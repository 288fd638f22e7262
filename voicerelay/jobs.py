"""
voicerelay/jobs.py
===================
Job model & registry — VoiceRelay

Every upload becomes a Job with its own id, its own file slots and its
own stage. Stages follow the pipeline order:

    recording → transcribing → generating → synthesizing → ready

and any provider failure ends the job in a tagged failure stage
(transcription_failed | completion_failed | synthesis_failed) that is
visible to pollers.

The legacy readiness flag is derived, not stored: it is the `ready`
property of the most recently created job. Creating a job therefore
resets it, and it only turns true once that job's reply is on disk.

The registry is in-memory and lives for the process. It is only
mutated from the event loop thread.
"""

import asyncio
import itertools
import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from voicerelay.store import FileStore

logger = logging.getLogger("voicerelay.jobs")

# Process-wide order in which jobs reach a terminal stage
_finish_counter = itertools.count(1)


class JobStage(str, Enum):
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    GENERATING = "generating"
    SYNTHESIZING = "synthesizing"
    READY = "ready"
    TRANSCRIPTION_FAILED = "transcription_failed"
    COMPLETION_FAILED = "completion_failed"
    SYNTHESIS_FAILED = "synthesis_failed"


TERMINAL_STAGES: frozenset[JobStage] = frozenset({
    JobStage.READY,
    JobStage.TRANSCRIPTION_FAILED,
    JobStage.COMPLETION_FAILED,
    JobStage.SYNTHESIS_FAILED,
})


@dataclass
class Job:
    job_id: str
    stage: JobStage = JobStage.RECORDING
    transcript: str | None = None
    reply_text: str | None = None
    error: str | None = None
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    finish_seq: int = 0

    @property
    def ready(self) -> bool:
        return self.stage is JobStage.READY

    @property
    def terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: JobStage) -> None:
        logger.info("Job %s: %s → %s", self.job_id, self.stage.value, stage.value)
        self.stage = stage
        if stage in TERMINAL_STAGES:
            self.finished_at = time.time()
            self.finish_seq = next(_finish_counter)

    def fail(self, stage: JobStage, error: str) -> None:
        self.error = error
        self.advance(stage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "stage": self.stage.value,
            "ready": self.ready,
            "transcript": self.transcript,
            "reply_text": self.reply_text,
            "error": self.error,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }


class JobRegistry:
    """
    Insertion-ordered map of job id → Job with bounded retention.

    When more than `max_retained` jobs exist, the oldest terminal jobs
    are evicted together with their files. The latest job and the latest
    ready job are never evicted.
    """

    def __init__(self, store: FileStore, max_retained: int = 20):
        self.store = store
        self.max_retained = max(1, max_retained)
        self._jobs: "OrderedDict[str, Job]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._jobs)

    async def create(self) -> Job:
        """Register a new job; evicted jobs have their files removed off the loop."""
        job = Job(job_id=uuid.uuid4().hex)
        self._jobs[job.job_id] = job
        logger.info("Job %s created", job.job_id)
        for job_id in self._evict():
            await asyncio.to_thread(self.store.discard, job_id)
        return job

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def latest(self) -> Job | None:
        if not self._jobs:
            return None
        return next(reversed(self._jobs.values()))

    def latest_ready(self) -> Job | None:
        """Most recently *finished* ready job (last write wins)."""
        ready = [job for job in self._jobs.values() if job.ready]
        if not ready:
            return None
        return max(ready, key=lambda job: job.finish_seq)

    def _evict(self) -> list[str]:
        excess = len(self._jobs) - self.max_retained
        if excess <= 0:
            return []

        keep = {j.job_id for j in (self.latest(), self.latest_ready()) if j}
        evicted: list[str] = []
        for job_id, job in list(self._jobs.items()):
            if len(evicted) >= excess:
                break
            if job_id in keep or not job.terminal:
                continue
            del self._jobs[job_id]
            evicted.append(job_id)
            logger.debug("Job %s evicted", job_id)
        return evicted
