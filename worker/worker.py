import asyncio
import logging
import random
from typing import Sequence, Tuple

from common.config import DELAY_MAX_MS, DELAY_MIN_MS
from common.errors import ImageProcessingError, StoreNotFoundError
from common.job_schema import ImageResult, ProcessingError, Visit
from common.storage import JobStore
from common.stores import StoreLookup
from worker.measure import ImageMeasurer

logger = logging.getLogger(__name__)


async def simulate_load(delay_range: Tuple[float, float] = (DELAY_MIN_MS, DELAY_MAX_MS)) -> None:
    """Sleeps for a random time in delay_range (milliseconds) to mimic a busy downstream."""
    low, high = delay_range
    if high <= 0:
        return
    await asyncio.sleep(random.uniform(low, high) / 1000)


def check_store(store_lookup: StoreLookup, store_id: str) -> None:
    if not store_lookup.exists(store_id):
        raise StoreNotFoundError(store_id)


async def process_job(
    job_id: str,
    visits: Sequence[Visit],
    *,
    job_store: JobStore,
    store_lookup: StoreLookup,
    measurer: ImageMeasurer,
    delay_range: Tuple[float, float] = (DELAY_MIN_MS, DELAY_MAX_MS),
) -> None:
    """
    Measures every image of every visit, one at a time and in order.
    The first unknown store or failed image fails the whole job and stops
    processing; nothing after it is attempted.
    """
    logger.info("Processing job %s: %d visits", job_id, len(visits))

    for visit in visits:
        try:
            check_store(store_lookup, visit.store_id)
        except StoreNotFoundError as e:
            logger.warning("Job %s failed: %s", job_id, e)
            job_store.fail(job_id, ProcessingError.store_missing(visit.store_id))
            return

        for image_url in visit.image_url:
            try:
                perimeter = await measurer.measure(image_url)
                await simulate_load(delay_range)
            except ImageProcessingError as e:
                logger.warning("Job %s failed on %s: %s", job_id, image_url, e.detail)
                job_store.fail(job_id, ProcessingError.image_failed(visit.store_id, image_url, e.detail))
                return
            except Exception as e:
                logger.exception("Job %s failed on %s", job_id, image_url)
                job_store.fail(job_id, ProcessingError.image_failed(visit.store_id, image_url, str(e)))
                return

            store = store_lookup.get(visit.store_id)
            job_store.add_result(job_id, ImageResult(
                store_id=visit.store_id,
                store_name=store.store_name,
                area_code=store.area_code,
                image_url=image_url,
                perimeter=perimeter,
                visit_time=visit.visit_time,
            ))

    if job_store.complete(job_id):
        logger.info("Job %s completed", job_id)
