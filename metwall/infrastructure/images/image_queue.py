"""Viewport-driven image load queue.

Placeholders are enqueued when the host's visibility observer reports them
(a generous margin means this happens before they are actually on screen),
and at most K loads run at once. The queue shares nothing with the data
fetch path: it has its own cap, its own FIFO and its own per-item state.
"""

import asyncio
import enum
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Iterable, Optional, Set

from metwall.domain.interfaces.visibility import VisibilityObserver

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_ROOT_MARGIN_PX = 900  # start loading before it enters view

class LoadState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"

@dataclass(eq=False)
class ImageQueueItem:
    """An opaque handle to a visual placeholder and its pending source."""
    handle: Any
    src: str
    state: LoadState = LoadState.UNLOADED
    payload: Optional[bytes] = None
    failures: int = 0
    last_error: Optional[str] = None
    orphaned: bool = field(default=False, repr=False)

    @property
    def claimed(self) -> bool:
        """True while loading or once loaded; such items are never re-enqueued."""
        return self.state is not LoadState.UNLOADED

ImageLoader = Callable[[ImageQueueItem], Awaitable[Any]]

class ImageLoadQueue:
    """FIFO of placeholders with a cap on concurrent loads."""

    def __init__(
        self,
        loader: ImageLoader,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        observer: Optional[VisibilityObserver] = None,
    ):
        """Initializes the queue.

        Args:
            loader: Begins loading an item; returning means success, raising
                means failure.
            max_concurrency: Maximum number of loads in flight.
            observer: Host-supplied visibility observer. Optional when the
                caller drives `on_visible` itself.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.loader = loader
        self.max_concurrency = max_concurrency
        self.observer = observer
        self._queue: Deque[ImageQueueItem] = deque()
        self._active = 0
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return len(self._queue)

    def observe(self, items: Iterable[ImageQueueItem]) -> None:
        """Re-observes every item that still needs loading."""
        if self.observer is None:
            raise RuntimeError("No visibility observer configured")
        self.observer.disconnect()
        for item in items:
            if not item.claimed:
                self.observer.observe(item)

    def on_visible(self, item: ImageQueueItem) -> None:
        """Visibility callback: enqueue instead of loading instantly."""
        if self.observer is not None:
            self.observer.unobserve(item)
        if item.claimed or item in self._queue:
            logger.debug(f"Ignoring visibility signal for {item.src}: already queued or claimed.")
            return
        item.orphaned = False
        self._queue.append(item)
        self._pump()

    def withdraw(self, item: ImageQueueItem) -> None:
        """Forgets an item whose placeholder was discarded by its owner.

        A queued item is dropped. An item already loading keeps its slot
        until the load settles; the outcome is then discarded and the item
        goes back to UNLOADED so a later visibility signal can load it again.
        """
        if self.observer is not None:
            self.observer.unobserve(item)
        try:
            self._queue.remove(item)
        except ValueError:
            pass
        if item.state is LoadState.LOADING:
            item.orphaned = True

    def _pump(self) -> None:
        while self._active < self.max_concurrency and self._queue:
            item = self._queue.popleft()
            if item.claimed:
                continue
            if not item.src:
                logger.debug(f"Skipping placeholder without a source: {item.handle!r}")
                continue

            self._active += 1
            item.state = LoadState.LOADING
            task = asyncio.ensure_future(self._load(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _load(self, item: ImageQueueItem) -> None:
        try:
            await self.loader(item)
        except Exception as e:
            # Allow a retry on the next visibility signal
            logger.warning(f"Image load failed for {item.src}: {e}")
            if not item.orphaned:
                item.state = LoadState.UNLOADED
                item.failures += 1
                item.last_error = str(e)
        else:
            if not item.orphaned:
                item.state = LoadState.LOADED
        finally:
            if item.orphaned:
                logger.debug(f"Discarding outcome of withdrawn load for {item.src}")
                item.state = LoadState.UNLOADED
                item.payload = None
                item.orphaned = False
            self._active -= 1
            self._pump()

    async def drain(self) -> None:
        """Waits until nothing is queued or loading."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
