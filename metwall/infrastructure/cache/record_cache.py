"""Concrete implementation of the two-tier record cache.

L1 is an in-memory dict of ArtworkRecord objects. L2 is a single JSON blob
(object id -> record dict) kept under one key of a DurableStore. The blob is
loaded lazily on first use and rewritten on a debounced timer, so a burst of
puts costs one durable write.

Entries never expire. Growth is bounded only by the number of distinct ids
a user ever looks at; `clear()` is the way to reset it.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from metwall.domain.interfaces.cache import RecordCache
from metwall.domain.interfaces.durable_store import DurableStore
from metwall.domain.models.artwork import ArtworkRecord
from metwall.domain.models.common import ObjectID, StoreKey

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = StoreKey("mcb_met_object_cache_v1")
DEFAULT_DEBOUNCE_SECONDS = 0.6
VALID_LEVELS = ('l1', 'l2', 'all')

class RecordCacheImpl(RecordCache):
    """Multi-level record cache (L1 Memory, L2 DurableStore)."""

    def __init__(
        self,
        store: DurableStore,
        store_key: StoreKey = DEFAULT_STORE_KEY,
        debounce_s: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """Initializes the record cache.

        Args:
            store: Durable key/value store backing L2.
            store_key: The single key the L2 blob lives under.
            debounce_s: Coalescing window for durable writes.
        """
        self.store = store
        self.store_key = store_key
        self.debounce_s = debounce_s
        self.l1_cache: Dict[ObjectID, ArtworkRecord] = {}
        self._l2_blob: Optional[Dict[str, Any]] = None
        self._save_timer: Optional[asyncio.TimerHandle] = None
        self._dirty = False
        logger.info(f"RecordCache initialized. L2(key={store_key}, debounce={debounce_s}s)")

    def __len__(self) -> int:
        return len(self._load_l2().keys() | {str(k) for k in self.l1_cache})

    def __contains__(self, object_id: object) -> bool:
        return object_id in self.l1_cache or str(object_id) in self._load_l2()

    @property
    def save_pending(self) -> bool:
        return self._save_timer is not None

    def _load_l2(self) -> Dict[str, Any]:
        """Reads the L2 blob once per instance; unreadable data counts as empty."""
        if self._l2_blob is not None:
            return self._l2_blob
        try:
            raw = self.store.get(self.store_key)
            parsed = json.loads(raw) if raw else {}
            if not isinstance(parsed, dict):
                logger.warning(f"L2 cache blob under '{self.store_key}' is not a mapping. Starting empty.")
                parsed = {}
        except Exception as e:
            logger.warning(f"Failed to read or parse L2 cache blob '{self.store_key}': {e}. Starting empty.")
            parsed = {}
        self._l2_blob = parsed
        logger.debug(f"L2 cache loaded with {len(parsed)} entries.")
        return parsed

    # --- RecordCache Interface Implementation ---

    def get(self, object_id: ObjectID) -> Optional[ArtworkRecord]:
        """Retrieves a record from L1, then L2 (promoting L2 hits)."""
        record = self.l1_cache.get(object_id)
        if record is not None:
            logger.debug(f"L1 cache hit for object: {object_id}")
            return record

        data = self._load_l2().get(str(object_id))
        if data:
            try:
                record = ArtworkRecord.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding malformed L2 entry for object {object_id}: {e}")
                return None
            logger.debug(f"L2 cache hit for object: {object_id}")
            self.l1_cache[object_id] = record
            return record

        logger.debug(f"Cache miss for object: {object_id}")
        return None

    def put(self, object_id: ObjectID, record: ArtworkRecord) -> None:
        """Stores a record in L1 and schedules the L2 write."""
        self.l1_cache[object_id] = record
        self._load_l2()[str(object_id)] = record.to_dict()
        self._dirty = True
        logger.debug(f"Stored object {object_id} in cache.")
        self._schedule_save()

    def _schedule_save(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to debounce on; persist right away
            self._write_l2()
            return
        if self._save_timer is not None:
            self._save_timer.cancel()
        self._save_timer = loop.call_later(self.debounce_s, self._write_l2)

    def _write_l2(self) -> None:
        self._save_timer = None
        if self._l2_blob is None:
            return
        try:
            self.store.set(self.store_key, json.dumps(self._l2_blob))
            self._dirty = False
            logger.debug(f"Persisted {len(self._l2_blob)} entries to L2 under '{self.store_key}'.")
        except Exception as e:
            logger.error(f"Failed to write L2 cache blob '{self.store_key}': {e}")

    def flush(self) -> None:
        """Writes pending L2 changes now and cancels the debounce timer."""
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None
        if self._dirty:
            self._write_l2()

    def clear(self, level: str = 'all') -> None:
        """Clears all records from the specified tier(s)."""
        if level not in VALID_LEVELS:
            raise ValueError(f"Invalid cache level '{level}'. Choose one of: {', '.join(VALID_LEVELS)}.")

        if level in ['l1', 'all']:
            self.l1_cache.clear()
            logger.info("Cleared L1 (in-memory) cache.")

        if level in ['l2', 'all']:
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None
            self._l2_blob = {}
            self._dirty = False
            self.store.delete(self.store_key)
            logger.info(f"Cleared L2 (durable) cache under '{self.store_key}'.")
