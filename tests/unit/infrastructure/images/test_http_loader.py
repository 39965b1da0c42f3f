import asyncio
import httpx
import pytest

from metwall.infrastructure.images.http_loader import HttpImageLoader
from metwall.infrastructure.images.image_queue import ImageQueueItem

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"

def image_transport(requested):
    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.path == "/missing.jpg":
            return httpx.Response(404)
        return httpx.Response(200, content=JPEG_BYTES, headers={"content-type": "image/jpeg"})
    return httpx.MockTransport(handler)

def test_resolve_joins_proxy_path_with_base_url():
    loader = HttpImageLoader(client=None, base_url="http://localhost:3000")
    assert loader.resolve("/proxy?url=abc") == "http://localhost:3000/proxy?url=abc"
    assert HttpImageLoader(client=None).resolve("https://images.metmuseum.org/a.jpg") == "https://images.metmuseum.org/a.jpg"

def test_loader_stores_payload_and_writes_file(tmp_path):
    requested = []
    item = ImageQueueItem(handle=436535, src="/proxy?url=https%3A%2F%2Fimages.metmuseum.org%2Fa.jpg")

    async def main():
        async with httpx.AsyncClient(transport=image_transport(requested)) as client:
            loader = HttpImageLoader(client, base_url="http://localhost:3000", download_dir=tmp_path / "wall")
            await loader(item)

    asyncio.run(main())

    assert len(requested) == 1
    assert requested[0].startswith("http://localhost:3000/proxy?url=")
    assert item.payload == JPEG_BYTES
    assert (tmp_path / "wall" / "436535.jpg").read_bytes() == JPEG_BYTES

def test_loader_raises_on_error_status():
    item = ImageQueueItem(handle=1, src="https://images.metmuseum.org/missing.jpg")

    async def main():
        async with httpx.AsyncClient(transport=image_transport([])) as client:
            await HttpImageLoader(client)(item)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(main())
    assert item.payload is None
