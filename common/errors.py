class JobError(Exception):
    """Base class for everything the job engine raises."""


class JobValidationError(JobError):
    """Malformed submission. Raised synchronously, no job is created."""


class StoreNotFoundError(JobError):
    def __init__(self, store_id: str):
        super().__init__(f"Store ID does not exist: {store_id}")
        self.store_id = store_id


class ImageProcessingError(JobError):
    """An image could not be turned into a perimeter."""

    def __init__(self, url: str, detail: str):
        super().__init__(detail)
        self.url = url
        self.detail = detail


class ImageFetchError(ImageProcessingError):
    pass


class ImageDecodeError(ImageProcessingError):
    pass
