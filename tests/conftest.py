import pytest
import httpx
from typer.testing import CliRunner
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from metwall.infrastructure.cache.durable_store import MemoryStore
from metwall.infrastructure.cache.record_cache import RecordCacheImpl
from metwall.infrastructure.config.settings import clear_test_config
from metwall.infrastructure.http.collection_client import CollectionTransport
from metwall.infrastructure.resilience.api_retry import ApiRetryService
from metwall.infrastructure.resilience.scheduler import PoliteScheduler
from metwall.core.services.collection_service import CollectionService

class FakeCollectionApi:
    """In-memory stand-in for the collection API, served through httpx.MockTransport.

    Records every request path so tests can count upstream calls.
    """

    def __init__(self):
        self.objects: Dict[int, Dict[str, Any]] = {}
        self.searches: Dict[str, Optional[List[int]]] = {}
        # path -> statuses returned (in order) before the normal answer
        self.failures: Dict[str, List[int]] = {}
        # path -> body served with a 200 instead of JSON
        self.html_pages: Dict[str, str] = {}
        self.calls: List[str] = []

    def add_object(self, object_id: int, title: str = "", image: bool = True, **fields: Any) -> Dict[str, Any]:
        payload = {
            "objectID": object_id,
            "title": title or f"Object {object_id}",
            "artistDisplayName": "",
            "objectDate": "",
            "department": "",
            "medium": "",
            "primaryImage": f"https://images.metmuseum.org/original/{object_id}.jpg" if image else "",
            "primaryImageSmall": f"https://images.metmuseum.org/web-large/{object_id}.jpg" if image else "",
            "objectURL": f"https://www.metmuseum.org/art/collection/search/{object_id}",
        }
        payload.update(fields)
        self.objects[object_id] = payload
        return payload

    def calls_to(self, fragment: str) -> int:
        return sum(1 for path in self.calls if fragment in path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)

        queued = self.failures.get(path)
        if queued:
            return httpx.Response(queued.pop(0), text="blocked")
        if path in self.html_pages:
            return httpx.Response(200, text=self.html_pages[path], headers={"content-type": "text/html"})

        if path.endswith("/search"):
            query = request.url.params.get("q")
            ids = self.searches.get(query)
            return httpx.Response(200, json={"total": len(ids or []), "objectIDs": ids})

        if "/objects/" in path:
            object_id = int(path.rsplit("/", 1)[1])
            if object_id in self.objects:
                return httpx.Response(200, json=self.objects[object_id])
            return httpx.Response(404, json={"message": "ObjectID not found"})

        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture
def met_api():
    return FakeCollectionApi()

@pytest.fixture
def memory_store():
    return MemoryStore()

@pytest.fixture
def make_stack(met_api, memory_store):
    """Factory wiring the real service stack against the fake API.

    Backoff sleeps are recorded instead of awaited.
    """

    def build(max_concurrency: int = 2, min_gap_s: float = 0.0, event_listener=None) -> SimpleNamespace:
        delays: List[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        transport = CollectionTransport(client=httpx.AsyncClient(transport=met_api.transport()))
        scheduler = PoliteScheduler(
            max_concurrency=max_concurrency,
            min_gap_s=min_gap_s,
            event_listener=event_listener,
        )
        api_retry_service = ApiRetryService(
            scheduler=scheduler,
            transport=transport.fetch_json,
            sleep=record_sleep,
            random_fn=lambda: 0.0,
            event_listener=event_listener,
        )
        record_cache = RecordCacheImpl(store=memory_store, debounce_s=0.01)
        service = CollectionService(api_retry_service=api_retry_service, record_cache=record_cache)
        return SimpleNamespace(
            api=met_api,
            store=memory_store,
            transport=transport,
            scheduler=scheduler,
            api_retry_service=api_retry_service,
            record_cache=record_cache,
            service=service,
            delays=delays,
        )

    return build

@pytest.fixture(autouse=True)
def reset_test_config():
    """Ensures overrides set by one test never leak into the next."""
    yield
    clear_test_config()
