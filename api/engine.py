import asyncio
import logging
import uuid
from typing import Dict, Optional, Tuple

from common.config import DELAY_MAX_MS, DELAY_MIN_MS
from common.errors import JobValidationError
from common.job_schema import Job, JobSnapshot, JobSubmission, ProcessingError
from common.storage import JobStore
from common.stores import StoreLookup
from worker.measure import ImageMeasurer
from worker.worker import process_job

logger = logging.getLogger(__name__)


def validate_submission(submission: JobSubmission) -> None:
    if not submission.count or not submission.visits:
        raise JobValidationError("Invalid job data: missing required fields")
    if submission.count != len(submission.visits):
        raise JobValidationError("Invalid job data: count does not match number of visits")
    for visit in submission.visits:
        if not visit.store_id:
            raise JobValidationError("Invalid job data: missing store_id in a visit")
        if not visit.image_url:
            raise JobValidationError("Invalid job data: missing or invalid image_url array in a visit")


class JobEngine:
    """
    Owns the job lifecycle: registers submissions in the job store and runs
    each one as its own background task. Jobs run concurrently with each
    other; a single job's images are processed strictly one after another.
    """

    def __init__(
        self,
        job_store: Optional[JobStore] = None,
        store_lookup: Optional[StoreLookup] = None,
        measurer: Optional[ImageMeasurer] = None,
        delay_range: Tuple[float, float] = (DELAY_MIN_MS, DELAY_MAX_MS),
    ):
        self.job_store = job_store if job_store is not None else JobStore()
        self.store_lookup = store_lookup if store_lookup is not None else StoreLookup()
        self.measurer = measurer or ImageMeasurer()
        self.delay_range = delay_range
        self._tasks: Dict[str, asyncio.Task] = {}

    async def submit(self, submission: JobSubmission) -> str:
        """Registers the job and starts it in the background. Returns the job id right away."""
        validate_submission(submission)

        job_id = uuid.uuid4().hex
        total_images = sum(len(v.image_url) for v in submission.visits)
        self.job_store.create(job_id, total_images)

        task = asyncio.create_task(self._supervise(job_id, submission), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))

        logger.info("Submitted job %s: %d visits, %d images", job_id, submission.count, total_images)
        return job_id

    async def _supervise(self, job_id: str, submission: JobSubmission) -> None:
        try:
            await process_job(
                job_id,
                submission.visits,
                job_store=self.job_store,
                store_lookup=self.store_lookup,
                measurer=self.measurer,
                delay_range=self.delay_range,
            )
        except Exception:
            logger.exception("Error processing job %s", job_id)
            self.job_store.fail(job_id, ProcessingError.unexpected())

    def get_status(self, job_id: str) -> Optional[JobSnapshot]:
        job = self.job_store.get(job_id)
        return JobSnapshot.of(job) if job else None

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.job_store.get(job_id)

    async def wait(self, job_id: str) -> None:
        """Waits for a job's background task, if it is still running."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)

    async def aclose(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d running jobs", len(tasks))
        await self.measurer.aclose()
