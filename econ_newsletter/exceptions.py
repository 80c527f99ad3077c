from typing import Any, Dict, List, Optional


class NewsletterError(Exception):
    pass


class CacheError(NewsletterError):
    pass


class CacheUnavailableError(CacheError):
    pass


class CacheRecordError(CacheError):
    """A cached value could not be decoded into the record expected for its key."""

    def __init__(self, message: str, key: Optional[str] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.kind = kind


class SourceFetchError(NewsletterError):
    pass


class ContentGenerationError(NewsletterError):
    pass


class EmailDeliveryError(NewsletterError):
    pass


class JobError(NewsletterError):
    pass


class JobNotFoundError(JobError):

    def __init__(self, job_name: str, available_jobs: List[str]):
        super().__init__(f"Job '{job_name}' not found")
        self.job_name = job_name
        self.available_jobs = available_jobs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": str(self),
            "available_jobs": self.available_jobs,
        }
