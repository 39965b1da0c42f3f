"""Allow-listed reverse proxy for collection images and JSON.

Relays GETs to a fixed set of collection hostnames so a browser page can
load them same-origin. It is not an open proxy: the scheme and host are
checked for the initial target and again for every redirect hop.
"""

import logging
from typing import FrozenSet, Iterable, Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response

logger = logging.getLogger(__name__)

ALLOW_HOSTS: FrozenSet[str] = frozenset({
    "collectionapi.metmuseum.org",
    "images.metmuseum.org",
    "www.metmuseum.org",
})
ALLOWED_SCHEMES = ("http", "https")
MAX_REDIRECTS = 6
DEFAULT_PORT = 3000
UPSTREAM_TIMEOUT_SECONDS = 30.0

UPSTREAM_HEADERS = {
    "User-Agent": "met-book-maker/1.0",
    "Accept": "*/*",
}
IMAGE_CACHE_CONTROL = "public, max-age=86400, immutable"
DEFAULT_CACHE_CONTROL = "public, max-age=300"


def parse_allowed_url(raw: str, allow_hosts: Iterable[str] = ALLOW_HOSTS) -> Optional[httpx.URL]:
    """Returns the parsed URL if its scheme and host are allowed, else None."""
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    if url.scheme not in ALLOWED_SCHEMES or url.host not in allow_hosts:
        return None
    return url


def create_app(
    allow_hosts: Iterable[str] = ALLOW_HOSTS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    port: int = DEFAULT_PORT,
    max_redirects: int = MAX_REDIRECTS,
) -> FastAPI:
    """Builds the proxy application.

    Args:
        allow_hosts: Hostnames the proxy may contact.
        transport: Optional httpx transport for upstream requests (tests
            pass an httpx.MockTransport).
        port: Reported by /health.
        max_redirects: Redirect hops followed before the response is mirrored as-is.
    """
    hosts = frozenset(allow_hosts)
    app = FastAPI(title="metwall proxy")

    # ---- Health (proves you're hitting THIS server) ----
    @app.get("/health")
    async def health():
        return {"ok": True, "port": port}

    @app.get("/proxy")
    async def proxy(url: Optional[str] = None):
        if not url:
            return PlainTextResponse("Missing url", status_code=400)

        target = parse_allowed_url(url, hosts)
        if target is None:
            logger.info(f"Rejected proxy target: {url}")
            return PlainTextResponse("Host not allowed", status_code=403)

        redirects_left = max_redirects
        async with httpx.AsyncClient(
            transport=transport,
            follow_redirects=False,
            timeout=UPSTREAM_TIMEOUT_SECONDS,
        ) as client:
            while True:
                try:
                    upstream = await client.get(target, headers=UPSTREAM_HEADERS)
                except httpx.HTTPError as e:
                    logger.warning(f"Proxy request to {target} failed: {e}")
                    return PlainTextResponse("Proxy request failed", status_code=502)

                location = upstream.headers.get("location")
                if 300 <= upstream.status_code < 400 and location and redirects_left > 0:
                    try:
                        joined = target.join(location)
                    except httpx.InvalidURL as e:
                        logger.warning(f"Malformed redirect from {target} to {location!r}: {e}")
                        return PlainTextResponse("Proxy request failed", status_code=502)
                    next_target = parse_allowed_url(str(joined), hosts)
                    if next_target is None:
                        logger.info(f"Rejected redirect from {target} to {location}")
                        return PlainTextResponse("Redirect host not allowed", status_code=403)
                    logger.debug(f"Following redirect {target} -> {next_target}")
                    target = next_target
                    redirects_left -= 1
                    continue
                break

        content_type = upstream.headers.get("content-type")
        is_image = bool(content_type) and content_type.startswith("image/")
        headers = {
            "cache-control": IMAGE_CACHE_CONTROL if is_image else DEFAULT_CACHE_CONTROL,
            "access-control-allow-origin": "*",
        }
        if content_type:
            headers["content-type"] = content_type
        return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)

    return app


def run_server(port: int = DEFAULT_PORT, host: str = "127.0.0.1") -> None:
    """Serves the proxy with uvicorn until interrupted."""
    logger.info(f"Proxy running on http://{host}:{port}")
    logger.info(f"Health check on http://{host}:{port}/health")
    uvicorn.run(create_app(port=port), host=host, port=port)
