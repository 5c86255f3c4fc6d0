"""
Service Errors

Every failure the pipeline knows how to classify derives from ServiceError.
Anything else escaping a source run is treated as an internal fault by the
scheduler.
"""


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class SourceFetchError(ServiceError):
    """Transient upstream failure: network error, bad status, unparseable body."""
    pass


class ResponseTooLargeError(SourceFetchError):
    """Upstream response exceeded the source's size ceiling."""
    pass


class PersistenceError(ServiceError):
    """A batch write to the store failed."""

    def __init__(self, service_name: str, message: str, attempted: int = 0, details: dict = None):
        self.attempted = attempted
        super().__init__(service_name, message, details)


class StoreUnavailableError(ServiceError):
    """The backing database could not be reached after bounded retries."""
    pass
