"""
voicerelay/store.py
====================
File Store — VoiceRelay

Responsibility:
    - Own the on-disk slots of every job under the resources directory:
          <resources_dir>/<job_id>/recording.wav   (uploaded audio)
          <resources_dir>/<job_id>/reply.wav       (synthesized reply)
    - Stream an upload into its recording slot
    - Persist a synthesized reply atomically (temp file + os.replace)
    - Remove the slots of evicted jobs

Each slot is single-valued and last-write-wins. Nothing here is an
archive: once a job is discarded its files are gone.

This module does NOT:
    - Call any provider
    - Track job state (see voicerelay/jobs.py)
"""

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger("voicerelay.store")

RECORDING_FILENAME = "recording.wav"
REPLY_FILENAME = "reply.wav"


class FileStore:
    """Per-job recording/reply slots rooted at one directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def job_dir(self, job_id: str) -> Path:
        return self.root / job_id

    def recording_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / RECORDING_FILENAME

    def reply_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / REPLY_FILENAME

    def open_recording(self, job_id: str) -> BinaryIO:
        """
        Open the recording slot of a job for writing, truncating any
        previous content. The caller closes the handle.
        """
        self.job_dir(job_id).mkdir(parents=True, exist_ok=True)
        return open(self.recording_path(job_id), "wb")

    def write_reply(self, job_id: str, data: bytes) -> Path:
        """
        Durably write synthesized audio into the reply slot.

        The bytes go to a temporary sibling first and are fsync'ed, then
        moved over the slot, so readers never see a partial reply.

        Returns:
            Path of the written reply file.
        """
        self.job_dir(job_id).mkdir(parents=True, exist_ok=True)
        target = self.reply_path(job_id)
        tmp = target.with_suffix(target.suffix + ".part")

        with open(tmp, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)

        logger.info("Reply written: %s (%d bytes)", target, len(data))
        return target

    def has_reply(self, job_id: str) -> bool:
        return self.reply_path(job_id).is_file()

    def discard(self, job_id: str) -> None:
        """Delete every file belonging to a job. Missing slots are ignored."""
        directory = self.job_dir(job_id)
        if directory.exists():
            shutil.rmtree(directory)
            logger.debug("Discarded job files: %s", directory)
