"""Rich console output for the metwall CLI: record tables and prefixed messages."""

import logging
from typing import Any, Optional, Sequence

from rich.box import ROUNDED
from rich.console import Console
from rich.table import Table

from metwall.domain.interfaces.user_interface import UserInterface
from metwall.domain.models.artwork import ArtworkRecord

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self.console = console or Console()

    def display_records(self, records: Sequence[ArtworkRecord], **kwargs: Any) -> None:
        """Renders records as a table, one row per wall card.

        Args:
            records: The records to display.
            **kwargs: Additional arguments including:
                - title: Table title (default: "Artwork")
                - labels: Optional per-record chip labels (e.g. the keyword)
                - show_images: Include the raw image URL column
        """
        title = kwargs.get("title", "Artwork")
        labels: Optional[Sequence[str]] = kwargs.get("labels")
        show_images = kwargs.get("show_images", False)
        logger.debug(f"display_records called: title={title}, count={len(records)}")

        table = Table(title=title, box=ROUNDED, border_style="cyan", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        if labels is not None:
            table.add_column("Keyword", style="magenta")
        table.add_column("ID", justify="right")
        table.add_column("Title", style="bold")
        table.add_column("Artist · Date · Department")
        if show_images:
            table.add_column("Image", overflow="fold")

        for index, record in enumerate(records):
            sub = " · ".join(part for part in (record.artist, record.date, record.department) if part)
            row = [str(index + 1)]
            if labels is not None:
                row.append(labels[index] if index < len(labels) else "")
            row.extend([str(record.object_id), record.title or "Untitled", sub])
            if show_images:
                row.append(record.raw_image)
            table.add_row(*row)

        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {error_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        self.console.print(f"[bold yellow]Warning:[/bold yellow] {warning_message}")

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(f"[blue]Info:[/blue] {info_message}")
