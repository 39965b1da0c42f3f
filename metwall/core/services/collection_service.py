"""Application service for looking up artwork in the collection.

Combines the record cache, the retrying scheduler-backed call and the batch
mapper into the lookups the wall needs: id searches, cache-first object
fetches, keyword picks and swap alternatives.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from metwall.domain.interfaces.cache import RecordCache
from metwall.domain.models.artwork import ArtworkRecord, KeywordPicks, KeywordSelection, normalize_object
from metwall.domain.models.common import ObjectID, SearchTerm
from metwall.infrastructure.http.collection_client import COLLECTION_API_BASE, object_url, search_url
from metwall.infrastructure.resilience.api_retry import ApiRetryService
from metwall.infrastructure.resilience.batch import DEFAULT_POOL_SIZE, map_pool

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANDIDATES_PER_KEYWORD = 28
DEFAULT_ALTERNATIVES_SLICE = 40
DEFAULT_WALL_SIZE = 26
DEFAULT_WALL_POOL = 6

class CollectionService:
    """Cache-first access to collection search and object records."""

    def __init__(
        self,
        api_retry_service: ApiRetryService,
        record_cache: RecordCache,
        base_url: str = COLLECTION_API_BASE,
    ):
        self.api_retry_service = api_retry_service
        self.record_cache = record_cache
        self.base_url = base_url
        self._inflight: Dict[ObjectID, "asyncio.Future[Optional[ArtworkRecord]]"] = {}

    async def search_object_ids(self, query: str, has_images: bool = True) -> List[ObjectID]:
        """Returns object ids matching `query`.

        Failures of the search call propagate; a blank query or a response
        without an id list yields an empty list.
        """
        q = str(query or "").strip()
        if not q:
            return []

        data = await self.api_retry_service.call(search_url(q, has_images, self.base_url))
        ids = data.get("objectIDs") if isinstance(data, dict) else None
        if not isinstance(ids, list):
            logger.info(f"Search for '{q}' returned no object ids.")
            return []
        logger.info(f"Search for '{q}' returned {len(ids)} object ids.")
        return [ObjectID(i) for i in ids]

    async def fetch_object(self, object_id: Any) -> Optional[ArtworkRecord]:
        """Returns the normalized record for `object_id`, or None if absent.

        Never raises: upstream and parse failures are logged and reported as
        absent. Concurrent lookups of the same id share one upstream call.
        """
        oid = _coerce_object_id(object_id)
        if oid is None:
            return None

        cached = self.record_cache.get(oid)
        if cached is not None:
            return cached

        inflight = self._inflight.get(oid)
        if inflight is not None:
            return await inflight

        future: "asyncio.Future[Optional[ArtworkRecord]]" = asyncio.get_running_loop().create_future()
        self._inflight[oid] = future
        try:
            record = await self._fetch_and_store(oid)
            future.set_result(record)
            return record
        finally:
            del self._inflight[oid]
            if not future.done():
                future.cancel()

    async def _fetch_and_store(self, oid: ObjectID) -> Optional[ArtworkRecord]:
        try:
            raw = await self.api_retry_service.call(object_url(oid, self.base_url))
            record = normalize_object(raw if isinstance(raw, dict) else None, fallback_id=oid)
        except Exception as e:
            # Controlled failure: the wall shows fewer cards, not an error
            logger.warning(f"Lookup of object {oid} failed: {e}")
            return None

        if record is None:
            logger.info(f"Object {oid} has no usable image.")
            return None

        self.record_cache.put(oid, record)
        return record

    async def fetch_objects(self, object_ids: Sequence[Any], pool: int = DEFAULT_POOL_SIZE) -> List[Optional[ArtworkRecord]]:
        """Fetches many ids with at most `pool` lookups in flight, in input order."""
        return await map_pool(object_ids, pool, lambda oid, _i: self.fetch_object(oid))

    async def pick_objects_for_keywords(
        self,
        keywords: Sequence[str],
        per_keyword: int = 1,
        max_candidates_per_keyword: int = DEFAULT_MAX_CANDIDATES_PER_KEYWORD,
        pool: int = DEFAULT_POOL_SIZE,
    ) -> KeywordPicks:
        """Picks up to `per_keyword` records per keyword without reusing an object."""

        async def candidates_for(keyword: str, _index: int) -> List[ArtworkRecord]:
            ids = await self.search_object_ids(keyword, has_images=True)
            # Don't sample too deep; we want fewer object calls
            trimmed = ids[:max_candidates_per_keyword]
            records = await self.fetch_objects(trimmed, pool)
            return [r for r in records if r is not None]

        packs = await map_pool(keywords, pool, candidates_for)

        picks = KeywordPicks()
        for keyword, candidates in zip(keywords, packs):
            picked = 0
            for record in candidates:
                if picked >= per_keyword:
                    break
                if record.object_id in picks.used_object_ids:
                    continue
                picks.used_object_ids.add(record.object_id)
                picks.selections.append(KeywordSelection(keyword=SearchTerm(keyword), record=record))
                picked += 1

        logger.info(f"Picked {len(picks.selections)} records for {len(keywords)} keywords.")
        return picks

    async def get_alternatives_for_keyword(
        self,
        keyword: str,
        want: int = 10,
        slice_size: int = DEFAULT_ALTERNATIVES_SLICE,
        exclude: Iterable[ObjectID] = (),
    ) -> List[ArtworkRecord]:
        """Returns up to `want` unique records for `keyword`, skipping `exclude`."""
        ids = await self.search_object_ids(keyword, has_images=True)
        if not ids:
            return []

        records = await self.fetch_objects(ids[:slice_size], DEFAULT_POOL_SIZE)
        seen: Set[ObjectID] = set(exclude)
        unique: List[ArtworkRecord] = []
        for record in records:
            if record is None or record.object_id in seen:
                continue
            seen.add(record.object_id)
            unique.append(record)
            if len(unique) >= want:
                break
        return unique

    async def load_prefetch_wall(
        self,
        object_ids: Sequence[Any],
        want: int = DEFAULT_WALL_SIZE,
        pool: int = DEFAULT_WALL_POOL,
    ) -> List[ArtworkRecord]:
        """Loads a curated set of ids, dropping those without an image."""
        ids = list(object_ids)[:min(want, len(object_ids))]
        records = await self.fetch_objects(ids, pool)
        return [r for r in records if r is not None]

def _coerce_object_id(value: Any) -> Optional[ObjectID]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")) or not number.is_integer():
        return None
    return ObjectID(int(number))
