"""Geometric visibility observer for hosts without a layout engine.

Items are registered with a vertical offset and height; scrolling reports
every observed item whose box intersects the viewport extended by the root
margin on both edges.
"""

import logging
from typing import Any, Callable, Dict, Tuple

from metwall.domain.interfaces.visibility import VisibilityObserver
from metwall.infrastructure.images.image_queue import DEFAULT_ROOT_MARGIN_PX

logger = logging.getLogger(__name__)

class ScrollViewport(VisibilityObserver):
    """A vertical scroll viewport that fires a callback for items coming into view."""

    def __init__(
        self,
        callback: Callable[[Any], None],
        viewport_height: float,
        root_margin_px: float = DEFAULT_ROOT_MARGIN_PX,
    ):
        self.callback = callback
        self.viewport_height = viewport_height
        self.root_margin_px = root_margin_px
        self.scroll_top = 0.0
        self._layout: Dict[int, Tuple[float, float]] = {}
        self._observed: Dict[int, Any] = {}

    def place(self, item: Any, top: float, height: float) -> None:
        """Records where `item` sits in the scrollable content."""
        self._layout[id(item)] = (top, height)

    def observe(self, item: Any) -> None:
        self._observed[id(item)] = item

    def unobserve(self, item: Any) -> None:
        self._observed.pop(id(item), None)

    def disconnect(self) -> None:
        self._observed.clear()

    def is_observed(self, item: Any) -> bool:
        return id(item) in self._observed

    def scroll_to(self, offset: float) -> None:
        """Moves the viewport and reports newly intersecting items."""
        self.scroll_top = max(0.0, offset)
        self.check()

    def check(self) -> None:
        """Reports every observed item inside the margin-extended viewport."""
        low = self.scroll_top - self.root_margin_px
        high = self.scroll_top + self.viewport_height + self.root_margin_px
        # Callback may unobserve while we iterate
        for key, item in list(self._observed.items()):
            layout = self._layout.get(key)
            if layout is None:
                continue
            top, height = layout
            if top < high and top + height > low:
                logger.debug(f"Item at {top}px entered the extended viewport ({low}..{high}).")
                self.callback(item)
