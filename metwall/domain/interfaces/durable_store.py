"""Interface for a string-keyed persistent store.

The record cache keeps its whole durable tier under a single key as one
JSON blob, so the store only needs plain get/set semantics.
"""

import abc
from typing import Optional

from ..models.common import StoreKey

class DurableStore(abc.ABC):
    """Abstract Base Class for a key/value store that survives restarts."""

    @abc.abstractmethod
    def get(self, key: StoreKey) -> Optional[str]:
        """Returns the stored string, or None if the key is unknown."""
        pass

    @abc.abstractmethod
    def set(self, key: StoreKey, value: str) -> None:
        """Stores `value` under `key`, replacing any previous value."""
        pass

    @abc.abstractmethod
    def delete(self, key: StoreKey) -> None:
        """Removes `key` if present."""
        pass

    def close(self) -> None:
        """Releases any underlying resources."""
        pass
