"""
Exception taxonomy for the additive scraping engine.

Every error raised by the session engine, the collectors, the lifecycle
manager or the extraction pipeline derives from AdditiveScrapeError so
callers can catch the whole family in one place.
"""

from typing import Optional


class AdditiveScrapeError(Exception):
    """Base class for all additive scraping errors."""
    pass


class ValidationError(AdditiveScrapeError):
    """Raised when a collector is handed no usable URLs or invalid configuration."""
    pass


class NotInitializedError(AdditiveScrapeError):
    """Exception raised when a collector is executed before initialize()."""

    def __init__(self, collector_id: str):
        self.collector_id = collector_id
        super().__init__(f"Collector '{collector_id}' is not initialized")


class AlreadyBusyError(AdditiveScrapeError):
    """Exception raised when a collector instance is already executing."""

    def __init__(self, collector_id: str):
        self.collector_id = collector_id
        super().__init__(f"Collector '{collector_id}' is already executing")


class CollectionError(AdditiveScrapeError):
    """Exception raised when a collector strategy fails as a whole."""

    def __init__(self, collector_id: str, message: str):
        self.collector_id = collector_id
        super().__init__(f"Collector '{collector_id}' failed: {message}")


class ExtractionTimeoutError(AdditiveScrapeError):
    """Exception raised when the extraction pipeline exceeds its deadline."""

    def __init__(self, timeout: float, url: Optional[str] = None):
        self.timeout = timeout
        self.url = url
        target = f" for {url}" if url else ""
        super().__init__(f"Extraction timed out after {timeout} seconds{target}")


class PartialExtractionFailure(AdditiveScrapeError):
    """
    A single extractor failed inside the pipeline.

    Non-fatal: the pipeline records it and omits that category from the
    result instead of raising it.
    """

    def __init__(self, extractor: str, cause: BaseException):
        self.extractor = extractor
        self.cause = cause
        super().__init__(f"Extractor '{extractor}' failed: {cause}")


class CollectorNotFoundError(AdditiveScrapeError):
    """Exception raised when a session is asked to run an unknown collector."""

    def __init__(self, collector_id: str):
        self.collector_id = collector_id
        super().__init__(f"Collector '{collector_id}' is not registered with this session")


class InstanceUnavailableError(AdditiveScrapeError):
    """Exception raised when the lifecycle manager cannot supply an instance."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Collector instance '{instance_id}' is not available")


class SessionCompletedError(AdditiveScrapeError):
    """Exception raised when a run is added to a completed session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' is completed")
