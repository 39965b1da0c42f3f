"""Durable store backends for the record cache's L2 tier."""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import diskcache as dc

from metwall.domain.interfaces.durable_store import DurableStore
from metwall.domain.models.common import StoreKey

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = Path.home() / ".metwall_cache" / "store"

class DiskCacheStore(DurableStore):
    """Persists values in a diskcache directory shared across sessions."""

    def __init__(self, directory: Union[str, Path] = DEFAULT_STORE_DIR):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache = dc.Cache(str(self.directory))
        logger.info(f"DiskCacheStore opened at: {self.directory}")

    def get(self, key: StoreKey) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: StoreKey, value: str) -> None:
        self._cache.set(key, value)

    def delete(self, key: StoreKey) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        self._cache.close()

class MemoryStore(DurableStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: StoreKey) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: StoreKey, value: str) -> None:
        self.data[key] = value
        self.write_count += 1

    def delete(self, key: StoreKey) -> None:
        self.data.pop(key, None)
