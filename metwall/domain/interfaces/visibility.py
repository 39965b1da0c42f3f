"""Interface for the host's visibility signal.

The image queue never inspects layout itself. The host supplies an observer
that calls back when an observed item enters (or is about to enter) the
viewport.
"""

import abc
from typing import Any

class VisibilityObserver(abc.ABC):
    """Watches items and reports when they come into view."""

    @abc.abstractmethod
    def observe(self, item: Any) -> None:
        """Starts watching `item`."""
        pass

    @abc.abstractmethod
    def unobserve(self, item: Any) -> None:
        """Stops watching `item`. Unknown items are ignored."""
        pass

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Stops watching every item."""
        pass
