import pytest

from common.job_schema import ImageResult, JobStatus, ProcessingError
from common.storage import JobStore


def _result(url="https://x/a.png"):
    return ImageResult(
        store_id="RP00001", store_name="B P STORE", area_code="7100015",
        image_url=url, perimeter=300, visit_time="t1",
    )


def test_create_starts_ongoing_with_zeroed_counters():
    store = JobStore()
    job = store.create("j1", total_images=3)

    assert job.status == JobStatus.ONGOING
    assert (job.total_images, job.processed_images) == (3, 0)
    assert job.results == [] and job.errors == []
    assert "j1" in store and len(store) == 1


def test_get_unknown_is_none():
    assert JobStore().get("nope") is None


def test_get_returns_a_copy():
    store = JobStore()
    store.create("j1", total_images=1)

    copy = store.get("j1")
    copy.results.append(_result())
    copy.status = JobStatus.FAILED

    fresh = store.get("j1")
    assert fresh.results == []
    assert fresh.status == JobStatus.ONGOING


def test_duplicate_id_rejected():
    store = JobStore()
    store.create("j1", total_images=1)
    with pytest.raises(KeyError):
        store.create("j1", total_images=2)


def test_results_count_towards_completion():
    store = JobStore()
    store.create("j1", total_images=2)

    store.add_result("j1", _result("https://x/1.png"))
    assert not store.complete("j1")
    assert store.get("j1").status == JobStatus.ONGOING

    store.add_result("j1", _result("https://x/2.png"))
    assert store.complete("j1")

    job = store.get("j1")
    assert job.status == JobStatus.COMPLETED
    assert [r.image_url for r in job.results] == ["https://x/1.png", "https://x/2.png"]
    assert job.processed_images == job.total_images == 2


def test_more_results_than_images_rejected():
    store = JobStore()
    store.create("j1", total_images=1)
    store.add_result("j1", _result())
    with pytest.raises(ValueError):
        store.add_result("j1", _result())
    assert store.get("j1").processed_images == 1


def test_failed_job_is_terminal():
    store = JobStore()
    store.create("j1", total_images=2)
    store.fail("j1", ProcessingError.store_missing("UNKNOWN"))

    store.add_result("j1", _result())
    store.fail("j1", ProcessingError.unexpected())
    assert not store.complete("j1")

    job = store.get("j1")
    assert job.status == JobStatus.FAILED
    assert job.processed_images == 0
    assert [e.model_dump() for e in job.errors] == [
        {"store_id": "UNKNOWN", "error": "Store ID does not exist"},
    ]


def test_completed_job_is_terminal():
    store = JobStore()
    store.create("j1", total_images=0)
    assert store.complete("j1")

    store.fail("j1", ProcessingError.unexpected())
    job = store.get("j1")
    assert job.status == JobStatus.COMPLETED
    assert job.errors == []


def test_updates_for_unknown_job_are_ignored():
    store = JobStore()
    store.add_result("ghost", _result())
    store.fail("ghost", ProcessingError.unexpected())
    assert not store.complete("ghost")
    assert len(store) == 0
