"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the CollectionService, the record cache and the image load queue,
reporting outcomes through the UserInterface.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from metwall.core.services.collection_service import CollectionService
from metwall.domain.errors import UpstreamError
from metwall.domain.interfaces.cache import RecordCache
from metwall.domain.interfaces.user_interface import UserInterface
from metwall.domain.models.artwork import ArtworkRecord
from metwall.infrastructure.images.http_loader import HttpImageLoader
from metwall.infrastructure.images.image_queue import ImageLoadQueue, ImageQueueItem, LoadState
from metwall.infrastructure.images.viewport import ScrollViewport

logger = logging.getLogger(__name__)

# Curated ids for the default wall
PREFETCH_IDS = [
    436121, 436535, 437853, 435882, 437329, 459055, 438815, 437133, 438011,
    436105, 436454, 438722, 437980, 437658, 437430, 438023, 436839, 436532,
    39799, 54424, 248706, 20534, 459098, 437432, 436837, 436107,
]

NETWORK_BLOCK_MESSAGE = "Search hit a network block. Try again in a few seconds."
NO_RESULTS_MESSAGE = "No results with images. Try different keywords."

# Wall geometry used when paging through it for downloads
WALL_COLUMNS = 4
WALL_CARD_PX = 320
WALL_VIEWPORT_PX = 900

class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        collection_service: CollectionService,
        record_cache: RecordCache,
        ui: UserInterface,
        image_concurrency: int = 4,
        proxy_base_url: Optional[str] = None,
    ):
        """Initializes the CommandHandler with required services."""
        self.collection_service = collection_service
        self.record_cache = record_cache
        self.ui = ui
        self.image_concurrency = image_concurrency
        self.proxy_base_url = proxy_base_url

    async def handle_search(
        self,
        keywords: Sequence[str],
        per_keyword: int = 1,
        max_candidates: int = 20,
        pool: int = 3,
    ) -> List[ArtworkRecord]:
        """Handles the 'search' command: one or more records per keyword."""
        cleaned = [k.strip() for k in keywords if k and k.strip()]
        if not cleaned:
            self.ui.display_error("Type a keyword first.")
            return []

        logger.info(f"Handling 'search' command for keywords: {cleaned}")
        self.ui.display_info("Searching the collection...")
        try:
            picks = await self.collection_service.pick_objects_for_keywords(
                cleaned,
                per_keyword=per_keyword,
                max_candidates_per_keyword=max_candidates,
                pool=pool,
            )
        except UpstreamError as e:
            logger.error(f"Search command failed: {e}", exc_info=True)
            self.ui.display_error(NETWORK_BLOCK_MESSAGE)
            return []
        finally:
            self.record_cache.flush()

        if not picks.selections:
            self.ui.display_info(NO_RESULTS_MESSAGE)
            return []

        self.ui.display_records(
            picks.records,
            title="Search results",
            labels=[s.keyword for s in picks.selections],
        )
        return picks.records

    async def handle_fetch(self, object_ids: Sequence[str], pool: int = 3) -> List[ArtworkRecord]:
        """Handles the 'fetch' command: look up specific ids."""
        logger.info(f"Handling 'fetch' command for {len(object_ids)} ids")
        try:
            results = await self.collection_service.fetch_objects(list(object_ids), pool)
        finally:
            self.record_cache.flush()

        records = [r for r in results if r is not None]
        missing = [str(oid) for oid, r in zip(object_ids, results) if r is None]
        if missing:
            self.ui.display_warning(f"No usable image for: {', '.join(missing)}")
        if records:
            self.ui.display_records(records, title="Objects", show_images=True)
        return records

    async def handle_wall(
        self,
        want: int = 26,
        pool: int = 6,
        download_dir: Optional[Path] = None,
    ) -> List[ArtworkRecord]:
        """Handles the 'wall' command: the curated default wall.

        With a download directory, the wall is laid out in a scroll viewport
        and paged through; cards reported visible are fetched through the
        image load queue.
        """
        logger.info(f"Handling 'wall' command (want={want}, pool={pool})")
        self.ui.display_info("Loading wall...")
        try:
            records = await self.collection_service.load_prefetch_wall(PREFETCH_IDS, want=want, pool=pool)
        finally:
            self.record_cache.flush()

        if not records:
            self.ui.display_info(NO_RESULTS_MESSAGE)
            return []
        self.ui.display_records(records, title="Wall")

        if download_dir is not None:
            await self._download_images(records, Path(download_dir))
        return records

    async def _download_images(self, records: Sequence[ArtworkRecord], download_dir: Path) -> None:
        # Without a proxy the raw upstream locator is fetched directly
        use_proxy = bool(self.proxy_base_url)
        items = [
            ImageQueueItem(handle=record.object_id, src=record.image if use_proxy else record.raw_image)
            for record in records
        ]
        async with httpx.AsyncClient(follow_redirects=True) as client:
            loader = HttpImageLoader(client, base_url=self.proxy_base_url or "", download_dir=download_dir)
            queue: Optional[ImageLoadQueue] = None
            viewport = ScrollViewport(lambda item: queue.on_visible(item), viewport_height=WALL_VIEWPORT_PX)
            queue = ImageLoadQueue(loader, max_concurrency=self.image_concurrency, observer=viewport)
            content_height = self._lay_out_wall(viewport, items)
            queue.observe(items)

            # Page through the wall; each page settles before the next scroll
            offset = 0.0
            viewport.check()
            await queue.drain()
            while offset + WALL_VIEWPORT_PX < content_height:
                offset += WALL_VIEWPORT_PX
                viewport.scroll_to(offset)
                await queue.drain()
            viewport.disconnect()

        loaded = sum(1 for item in items if item.state is LoadState.LOADED)
        self.ui.display_info(f"Downloaded {loaded}/{len(items)} images to {download_dir}")
        if loaded < len(items):
            self.ui.display_warning(f"{len(items) - loaded} images failed to load.")

    @staticmethod
    def _lay_out_wall(viewport: ScrollViewport, items: Sequence[ImageQueueItem]) -> float:
        """Places cards row by row; returns the total content height."""
        for index, item in enumerate(items):
            viewport.place(item, top=(index // WALL_COLUMNS) * WALL_CARD_PX, height=WALL_CARD_PX)
        rows = -(-len(items) // WALL_COLUMNS)
        return float(rows * WALL_CARD_PX)

    def handle_clear_cache(self, level: str) -> None:
        """Handles the 'clear-cache' command."""
        logger.info(f"Handling 'clear-cache' command for level: {level}")
        try:
            self.record_cache.clear(level)
        except ValueError as e:
            self.ui.display_error(str(e))
            return
        self.ui.display_info(f"Cache cleared (level: {level}).")
