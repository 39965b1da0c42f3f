"""Implementation of the polite request scheduler.

Every outbound call to the collection service goes through one shared
scheduler, which caps how many operations run at once and enforces a
minimum gap between the start times of any two operations, whichever
slot they land in.
"""

import time
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional, Set

from metwall.domain.events.api_events import DomainEvent, EventListener, OperationAdmitted

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 2   # keep low to avoid looking like a bot
DEFAULT_MIN_GAP_SECONDS = 0.22  # minimum delay between operation starts

Operation = Callable[[], Awaitable[Any]]

@dataclass
class ScheduledOperation:
    """A queued unit of work plus the future its submitter awaits."""
    operation: Operation
    future: "asyncio.Future[Any]"

class PoliteScheduler:
    """FIFO dispatcher with a concurrency cap and start-time pacing."""

    def __init__(
        self,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        min_gap_s: float = DEFAULT_MIN_GAP_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the scheduler.

        Args:
            max_concurrency: Maximum number of operations in flight.
            min_gap_s: Minimum time between the starts of two operations.
            clock: Monotonic clock used for pacing.
            sleep: Coroutine used to wait out the gap.
            event_listener: Optional callback receiving admission events.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.min_gap_s = max(0.0, min_gap_s)
        self._clock = clock
        self._sleep = sleep
        self._event_listener = event_listener
        self._queue: Deque[ScheduledOperation] = deque()
        self._active = 0
        self._last_start: Optional[float] = None
        # Admission (dequeue, pacing wait, start) happens one item at a time
        self._admission_lock = asyncio.Lock()
        self._tasks: Set["asyncio.Task[Any]"] = set()
        logger.info(f"PoliteScheduler initialized: max_concurrency={max_concurrency}, min_gap={min_gap_s}s")

    @property
    def active(self) -> int:
        """Operations admitted and not yet settled."""
        return self._active

    @property
    def pending(self) -> int:
        """Operations waiting for admission."""
        return len(self._queue)

    async def submit(self, operation: Operation) -> Any:
        """Queues `operation` and returns its result once it has run.

        Exceptions raised by the operation are re-raised to the caller
        unchanged; the scheduler itself never interprets them.
        """
        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._queue.append(ScheduledOperation(operation=operation, future=future))
        logger.debug(f"Operation queued. pending={len(self._queue)} active={self._active}")
        self._schedule_pump()
        return await future

    def _schedule_pump(self) -> None:
        self._spawn(self._pump())

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _pump(self) -> None:
        """Admits at most one queued operation if a slot is free."""
        async with self._admission_lock:
            if self._active >= self.max_concurrency or not self._queue:
                return
            item = self._queue.popleft()
            self._active += 1

            # Re-check after waking so the gap is never cut short
            while self._last_start is not None:
                wait = self.min_gap_s - (self._clock() - self._last_start)
                if wait <= 0:
                    break
                logger.debug(f"Pacing: waiting {wait:.3f}s before next start.")
                await self._sleep(wait)
            self._last_start = self._clock()

            self._dispatch_event(OperationAdmitted(
                started_at=self._last_start,
                active=self._active,
                pending=len(self._queue),
            ))
            self._spawn(self._run(item))

    async def _run(self, item: ScheduledOperation) -> None:
        try:
            result = await item.operation()
        except Exception as e:
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            self._schedule_pump()

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener:
            self._event_listener(event)
