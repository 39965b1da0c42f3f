"""Viewport-driven image loading.

Bounded Context: Image Loading
"""

from metwall.infrastructure.images.image_queue import ImageLoadQueue, ImageQueueItem, LoadState
from metwall.infrastructure.images.viewport import ScrollViewport
from metwall.infrastructure.images.http_loader import HttpImageLoader

__all__ = ["ImageLoadQueue", "ImageQueueItem", "LoadState", "ScrollViewport", "HttpImageLoader"]
