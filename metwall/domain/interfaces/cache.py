"""Interface for the record cache.

Defines the contract for storing and retrieving normalized artwork records,
across a fast in-memory tier (L1) and a durable tier (L2).
"""

import abc
from typing import Optional

from ..models.artwork import ArtworkRecord
from ..models.common import ObjectID

class RecordCache(abc.ABC):
    """Abstract Base Class for record caching operations."""

    @abc.abstractmethod
    def get(self, object_id: ObjectID) -> Optional[ArtworkRecord]:
        """Retrieves a record by identifier.

        Checks L1 first, then L2 (promoting a hit into L1).

        Args:
            object_id: The upstream object identifier.

        Returns:
            The cached record, or None on a miss. Never raises.
        """
        pass

    @abc.abstractmethod
    def put(self, object_id: ObjectID, record: ArtworkRecord) -> None:
        """Stores a record in both tiers.

        The durable write may be deferred and coalesced with other writes.

        Args:
            object_id: The upstream object identifier.
            record: The normalized record. Absent records are never stored.
        """
        pass

    @abc.abstractmethod
    def flush(self) -> None:
        """Writes any pending durable changes immediately."""
        pass

    @abc.abstractmethod
    def clear(self, level: str = 'all') -> None:
        """Clears all records from the specified tier(s).

        Args:
            level: The cache level(s) to clear ('l1', 'l2', 'all').
        """
        pass
