"""Interface for presenting results to the user.

Defines the contract for displaying records, information, warnings and
errors, allowing different UI implementations (e.g., console, tests).
"""

import abc
from typing import Any, Sequence

from metwall.domain.models.artwork import ArtworkRecord

class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_records(self, records: Sequence[ArtworkRecord], **kwargs: Any) -> None:
        """Displays a list of artwork records.

        Args:
            records: The records to display, in wall order.
            **kwargs: Additional arguments for formatting (e.g., title, labels).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
