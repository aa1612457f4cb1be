"""Errors raised by the CourtListener integration."""
from typing import Optional


class CourtListenerAPIError(Exception):
    """Upstream answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(CourtListenerAPIError):
    """Still throttled (429/403) after every retry was spent."""

    def __init__(self, status_code: int, attempts: int):
        super().__init__(
            f"CourtListener API error: {status_code} - Rate limited after {attempts} attempts",
            status_code=status_code,
        )
        self.attempts = attempts


class DeadlineExceeded(Exception):
    """The caller's time budget ran out before the work finished."""
