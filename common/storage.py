import logging
import threading
from typing import Dict, Optional

from common.job_schema import ImageResult, Job, JobStatus, ProcessingError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# JOB STORE
# Process-lifetime registry of jobs. Nothing is persisted and nothing is
# evicted. Each job is mutated only by its own background task, but status
# reads can arrive from anywhere, so every access goes through one lock and
# readers get copies.
# ------------------------------------------------------------------------------

class JobStore:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, job_id: str, total_images: int) -> Job:
        """Registers a new ongoing job with zeroed counters."""
        job = Job(id=job_id, total_images=total_images)
        with self._lock:
            if job_id in self._jobs:
                raise KeyError(f"Job {job_id} already exists")
            self._jobs[job_id] = job
            return job.model_copy(deep=True)

    def get(self, job_id: str) -> Optional[Job]:
        """Point-in-time copy of the job, or None if it was never submitted."""
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def add_result(self, job_id: str, result: ImageResult) -> None:
        with self._lock:
            job = self._mutable(job_id)
            if job is None:
                return
            if job.processed_images >= job.total_images:
                raise ValueError(f"Job {job_id} already has all {job.total_images} results")
            job.results.append(result)
            job.processed_images += 1

    def fail(self, job_id: str, error: ProcessingError) -> None:
        with self._lock:
            job = self._mutable(job_id)
            if job is None:
                return
            job.errors.append(error)
            job.status = JobStatus.FAILED

    def complete(self, job_id: str) -> bool:
        """Marks the job completed if every image was processed cleanly."""
        with self._lock:
            job = self._mutable(job_id)
            if job is None:
                return False
            if job.errors or job.processed_images != job.total_images:
                logger.warning(
                    "Job %s not completed: %d/%d images, %d errors",
                    job_id, job.processed_images, job.total_images, len(job.errors),
                )
                return False
            job.status = JobStatus.COMPLETED
            return True

    def _mutable(self, job_id: str) -> Optional[Job]:
        # caller holds the lock
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning("Ignoring update for unknown job %s", job_id)
            return None
        if job.is_terminal:
            logger.warning("Ignoring update for job %s, already %s", job_id, job.status.value)
            return None
        return job
