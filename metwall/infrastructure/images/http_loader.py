"""Image loader that fetches placeholder sources over HTTP."""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urljoin

import aiofiles
import httpx

from metwall.infrastructure.images.image_queue import ImageQueueItem

logger = logging.getLogger(__name__)

class HttpImageLoader:
    """Loads `item.src` (usually a /proxy path) relative to `base_url`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "",
        download_dir: Optional[Union[str, Path]] = None,
    ):
        self.client = client
        self.base_url = base_url
        self.download_dir = Path(download_dir) if download_dir else None
        if self.download_dir:
            self.download_dir.mkdir(parents=True, exist_ok=True)

    def resolve(self, src: str) -> str:
        return urljoin(self.base_url, src) if self.base_url else src

    async def __call__(self, item: ImageQueueItem) -> None:
        url = self.resolve(item.src)
        response = await self.client.get(url)
        response.raise_for_status()
        item.payload = response.content

        if self.download_dir:
            target = self.download_dir / f"{item.handle}{_extension_for(response.headers.get('content-type'))}"
            async with aiofiles.open(target, "wb") as f:
                await f.write(response.content)
            logger.info(f"Saved {len(response.content)} bytes to {target}")

def _extension_for(content_type: Optional[str]) -> str:
    if not content_type:
        return ".bin"
    subtype = content_type.split(";")[0].strip().lower()
    return {
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/gif": ".gif",
        "image/webp": ".webp",
    }.get(subtype, ".bin")
