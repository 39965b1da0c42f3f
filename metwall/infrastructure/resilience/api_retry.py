"""Service for executing collection API calls with automatic retries.

Implements exponential backoff with jitter for transient upstream failures
(403, 429, 5xx). The whole retry loop for one request occupies a single
admission on the polite scheduler.
"""

import logging
import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Optional

from metwall.domain.errors import MaxRetryError, UpstreamError
from metwall.domain.events.api_events import (
    ApiCallFailed, ApiCallSucceeded, DomainEvent, EventListener, RetryScheduled
)
from metwall.infrastructure.resilience.scheduler import PoliteScheduler

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 4
DEFAULT_INITIAL_BACKOFF_SECONDS = 0.5
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_JITTER_SECONDS = 0.25

Transport = Callable[[str], Awaitable[Any]]


def is_retryable(error: Exception) -> bool:
    """Only upstream errors carrying a 403, 429 or 5xx status are retried.

    Timeouts and connection failures carry no status and fail immediately.
    """
    return isinstance(error, UpstreamError) and error.retryable

# --- Retry Service ---

class ApiRetryService:
    """Runs outbound calls through the scheduler with bounded retries."""

    def __init__(
        self,
        scheduler: PoliteScheduler,
        transport: Transport,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter_s: float = DEFAULT_JITTER_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        random_fn: Callable[[], float] = random.random,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            scheduler: The shared polite scheduler.
            transport: Coroutine function performing one GET and returning JSON.
            max_retries: Maximum number of retry attempts after the first call.
            initial_backoff_s: Delay before the first retry (jitter excluded).
            backoff_factor: Multiplier applied to the delay after each retry.
            jitter_s: Upper bound (exclusive) of the random delay added to each backoff.
            sleep: Coroutine used to wait between attempts.
            random_fn: Source of uniform values in [0, 1) for jitter.
            event_listener: Optional callback receiving retry/success/failure events.
        """
        self.scheduler = scheduler
        self.transport = transport
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.jitter_s = jitter_s
        self._sleep = sleep
        self._random = random_fn
        self._event_listener = event_listener

        logger.info(
            f"ApiRetryService initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}, jitter<{jitter_s}s"
        )

    async def call(self, url: str) -> Any:
        """Fetches `url` under the scheduler, retrying transient failures.

        Returns:
            The decoded JSON body.

        Raises:
            MaxRetryError: If every attempt failed with a retryable error.
            UpstreamError: On the first non-retryable failure.
        """
        return await self.scheduler.submit(lambda: self._call_with_retry(url))

    async def _call_with_retry(self, url: str) -> Any:
        attempt = 0
        backoff = self.initial_backoff_s
        start_time = time.perf_counter()

        while True:
            attempt += 1
            try:
                result = await self.transport(url)
            except Exception as e:
                if not is_retryable(e):
                    logger.warning(f"Non-retryable error for {url} on attempt {attempt}: {e}")
                    self._dispatch_failure(url, attempt, e)
                    raise

                if attempt > self.max_retries:
                    logger.error(f"Max retries ({self.max_retries}) reached for {url}. Last error: {e}")
                    self._dispatch_failure(url, attempt, e)
                    raise MaxRetryError(e, attempt) from e

                delay = backoff + self._random() * self.jitter_s
                logger.warning(
                    f"Retryable error for {url} on attempt {attempt}/{self.max_retries + 1}: {e}. "
                    f"Waiting {delay:.2f}s..."
                )
                self._dispatch_event(RetryScheduled(
                    url=url, attempt_number=attempt, delay_seconds=delay,
                    status=getattr(e, "status", None),
                ))
                await self._sleep(delay)
                backoff *= self.backoff_factor
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch_event(ApiCallSucceeded(url=url, attempts=attempt, latency_ms=latency_ms))
            return result

    def _dispatch_failure(self, url: str, attempts: int, error: Exception) -> None:
        self._dispatch_event(ApiCallFailed(
            url=url,
            attempts=attempts,
            error_type=type(error).__name__,
            error_message=str(error),
            status=getattr(error, "status", None),
        ))

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener:
            self._event_listener(event)
