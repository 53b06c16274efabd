from typing import Any, Optional

from .models import NormalizedError

class ApiError(Exception):
    """Raised for every failed request. Carries a NormalizedError."""
    def __init__(self, error: NormalizedError):
        self.error = error
        label = f"{error.status} {error.code}" if error.code else str(error.status)
        super().__init__(f"[{label}] {error.message} ({error.url})")

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def code(self) -> Optional[str]:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def request_id(self) -> Optional[str]:
        return self.error.request_id

    @property
    def details(self) -> Any:
        return self.error.details

    @property
    def url(self) -> str:
        return self.error.url

class CircuitOpenError(ApiError):
    """Raised without a network call when the path's circuit is open."""
    def __init__(self, url: str):
        super().__init__(NormalizedError(
            status=503,
            code="CircuitOpen",
            message="Temporarily unavailable",
            url=url
        ))

class RequestCancelledError(ApiError):
    """Raised when the caller cancels an in-flight request."""
    def __init__(self, url: str):
        super().__init__(NormalizedError(
            status=0,
            code="Cancelled",
            message="Request cancelled",
            url=url
        ))
