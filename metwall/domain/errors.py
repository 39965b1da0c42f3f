"""Error types raised while talking to the collection service.

An absent record (no displayable image) is not an error and never shows up
here; lookups return None for it.
"""

from typing import Optional

# Statuses the collection service uses for rate limiting, bot protection
# and temporary outages.
RETRYABLE_STATUSES = frozenset({403, 429})


def is_retryable_status(status: Optional[int]) -> bool:
    """True for 403, 429 and any 5xx."""
    if not status:
        return False
    return status in RETRYABLE_STATUSES or 500 <= status <= 599


class UpstreamError(Exception):
    """Base class for failures of an outbound call."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return is_retryable_status(self.status)


class UpstreamStatusError(UpstreamError):
    """The upstream answered with a non-2xx status."""

    def __init__(self, status: int, url: Optional[str] = None):
        super().__init__(f"HTTP {status}", status=status, url=url)

    @staticmethod
    def for_status(status: int, url: Optional[str] = None) -> "UpstreamStatusError":
        """Builds the transient or permanent subclass matching `status`."""
        if is_retryable_status(status):
            return TransientUpstreamError(status, url)
        return PermanentUpstreamError(status, url)


class TransientUpstreamError(UpstreamStatusError):
    """403, 429 or 5xx: worth retrying after a pause."""


class PermanentUpstreamError(UpstreamStatusError):
    """Any other non-2xx status: retrying will not help."""


class UpstreamTimeoutError(UpstreamError):
    """No response within the transport timeout. Carries no status."""

    def __init__(self, url: Optional[str] = None, timeout_s: Optional[float] = None):
        self.timeout_s = timeout_s
        super().__init__(f"Request timed out after {timeout_s}s", url=url)


class UpstreamConnectionError(UpstreamError):
    """The request failed before any response arrived."""


class UpstreamPayloadError(UpstreamError):
    """A 2xx response whose body is not JSON (typically a block page). Carries no status."""


class MaxRetryError(UpstreamError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: UpstreamError, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(
            f"Gave up after {attempts} attempts. Last error: {original_exception}",
            status=original_exception.status,
            url=original_exception.url,
        )

    @property
    def retryable(self) -> bool:
        # Retry budget already spent
        return False
