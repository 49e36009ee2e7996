from pydantic import BaseModel, Field, StrictInt
from typing import Any, List, Optional
from enum import Enum

STORE_NOT_FOUND = "Store ID does not exist"
UNEXPECTED_FAILURE = "Job processing failed unexpectedly"


class JobStatus(str, Enum):
    ONGOING = "ongoing"
    COMPLETED = "completed"
    FAILED = "failed"


class Visit(BaseModel):
    store_id: str = Field(..., min_length=1)
    image_url: List[str] = Field(..., min_length=1)
    visit_time: Any = None  # passed through untouched


class JobSubmission(BaseModel):
    count: StrictInt = Field(..., gt=0)
    visits: List[Visit] = Field(..., min_length=1)


class StoreInfo(BaseModel):
    store_name: str = ""
    area_code: str = ""


class ImageResult(BaseModel):
    store_id: str
    store_name: str
    area_code: str
    image_url: str
    perimeter: int
    visit_time: Any = None


class ProcessingError(BaseModel):
    store_id: Optional[str] = None
    error: str

    @classmethod
    def store_missing(cls, store_id: str) -> "ProcessingError":
        return cls(store_id=store_id, error=STORE_NOT_FOUND)

    @classmethod
    def image_failed(cls, store_id: str, url: str, detail: str) -> "ProcessingError":
        return cls(store_id=store_id, error=f"Failed to process image: {url}, Error: {detail}")

    @classmethod
    def unexpected(cls) -> "ProcessingError":
        return cls(error=UNEXPECTED_FAILURE)


class Job(BaseModel):
    id: str
    status: JobStatus = JobStatus.ONGOING
    total_images: int = 0
    processed_images: int = 0
    results: List[ImageResult] = Field(default_factory=list)
    errors: List[ProcessingError] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.ONGOING


class JobSnapshot(BaseModel):
    status: JobStatus
    job_id: str
    error: Optional[List[ProcessingError]] = None  # failed jobs only

    @classmethod
    def of(cls, job: Job) -> "JobSnapshot":
        if job.status == JobStatus.FAILED:
            return cls(status=job.status, job_id=job.id, error=job.errors)
        return cls(status=job.status, job_id=job.id)
