import asyncio
import httpx
import pytest
from unittest.mock import MagicMock

from metwall.core.command_handler import (
    NETWORK_BLOCK_MESSAGE,
    NO_RESULTS_MESSAGE,
    PREFETCH_IDS,
    CommandHandler,
)
from metwall.core.services.collection_service import CollectionService
from metwall.domain.errors import MaxRetryError, TransientUpstreamError
from metwall.domain.interfaces.cache import RecordCache
from metwall.domain.interfaces.user_interface import UserInterface
from metwall.domain.models.artwork import ArtworkRecord, KeywordPicks, KeywordSelection, proxy_url

def make_record(object_id):
    raw = f"https://images.metmuseum.org/{object_id}.jpg"
    return ArtworkRecord(object_id=object_id, title=f"Object {object_id}", image=proxy_url(raw), raw_image=raw)

@pytest.fixture
def mock_collection_service():
    return MagicMock(spec=CollectionService)

@pytest.fixture
def mock_record_cache():
    return MagicMock(spec=RecordCache)

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def command_handler(mock_collection_service, mock_record_cache, mock_ui):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(
        collection_service=mock_collection_service,
        record_cache=mock_record_cache,
        ui=mock_ui,
    )

def test_search_requires_a_keyword(command_handler, mock_collection_service, mock_ui):
    result = asyncio.run(command_handler.handle_search(["  ", ""]))
    assert result == []
    mock_ui.display_error.assert_called_once_with("Type a keyword first.")
    mock_collection_service.pick_objects_for_keywords.assert_not_called()

def test_search_displays_picks(command_handler, mock_collection_service, mock_record_cache, mock_ui):
    records = [make_record(1), make_record(2)]
    mock_collection_service.pick_objects_for_keywords.return_value = KeywordPicks(
        selections=[KeywordSelection("cat", records[0]), KeywordSelection("dog", records[1])],
        used_object_ids={1, 2},
    )

    result = asyncio.run(command_handler.handle_search([" cat ", "dog"], per_keyword=1, max_candidates=5, pool=2))

    assert result == records
    mock_collection_service.pick_objects_for_keywords.assert_called_once_with(
        ["cat", "dog"], per_keyword=1, max_candidates_per_keyword=5, pool=2,
    )
    mock_ui.display_records.assert_called_once_with(records, title="Search results", labels=["cat", "dog"])
    mock_record_cache.flush.assert_called_once()

def test_search_network_block(command_handler, mock_collection_service, mock_record_cache, mock_ui):
    mock_collection_service.pick_objects_for_keywords.side_effect = MaxRetryError(TransientUpstreamError(429), 5)

    assert asyncio.run(command_handler.handle_search(["cat"])) == []

    mock_ui.display_error.assert_called_once_with(NETWORK_BLOCK_MESSAGE)
    mock_record_cache.flush.assert_called_once()

def test_search_block_page_shows_network_block(make_stack, mock_ui):
    stack = make_stack()
    stack.api.html_pages["/public/collection/v1/search"] = "<html><body>Access denied</body></html>"
    handler = CommandHandler(collection_service=stack.service, record_cache=stack.record_cache, ui=mock_ui)

    assert asyncio.run(handler.handle_search(["cat"])) == []

    mock_ui.display_error.assert_called_once_with(NETWORK_BLOCK_MESSAGE)
    mock_ui.display_records.assert_not_called()
    assert stack.api.calls_to("/search") == 1

def test_search_without_results(command_handler, mock_collection_service, mock_ui):
    mock_collection_service.pick_objects_for_keywords.return_value = KeywordPicks()

    assert asyncio.run(command_handler.handle_search(["zzzz"])) == []

    mock_ui.display_info.assert_called_with(NO_RESULTS_MESSAGE)
    mock_ui.display_records.assert_not_called()

def test_fetch_warns_about_missing_ids(command_handler, mock_collection_service, mock_ui):
    mock_collection_service.fetch_objects.return_value = [make_record(1), None, make_record(3)]

    records = asyncio.run(command_handler.handle_fetch(["1", "2", "3"]))

    assert [r.object_id for r in records] == [1, 3]
    mock_ui.display_warning.assert_called_once_with("No usable image for: 2")
    mock_ui.display_records.assert_called_once()

def test_wall_loads_curated_ids(command_handler, mock_collection_service, mock_ui):
    mock_collection_service.load_prefetch_wall.return_value = [make_record(436121)]

    records = asyncio.run(command_handler.handle_wall(want=10, pool=4))

    assert len(records) == 1
    mock_collection_service.load_prefetch_wall.assert_called_once_with(PREFETCH_IDS, want=10, pool=4)
    mock_ui.display_records.assert_called_once()

def test_wall_downloads_images_through_queue(command_handler, mock_collection_service, mock_ui, mocker, tmp_path):
    mock_collection_service.load_prefetch_wall.return_value = [make_record(1), make_record(2)]
    requested = []

    def handler(request):
        requested.append(request.url.path)
        if request.url.path == "/2.jpg":
            return httpx.Response(500)
        return httpx.Response(200, content=b"jpeg", headers={"content-type": "image/jpeg"})

    real_client = httpx.AsyncClient
    mocker.patch(
        "metwall.core.command_handler.httpx.AsyncClient",
        side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    asyncio.run(command_handler.handle_wall(download_dir=tmp_path))

    assert sorted(requested) == ["/1.jpg", "/2.jpg"]
    assert (tmp_path / "1.jpg").read_bytes() == b"jpeg"
    assert not (tmp_path / "2.jpg").exists()
    mock_ui.display_info.assert_any_call(f"Downloaded 1/2 images to {tmp_path}")
    mock_ui.display_warning.assert_called_once_with("1 images failed to load.")

def test_wall_download_pages_through_viewport(command_handler, mock_collection_service, mock_ui, mocker, tmp_path):
    # Eight rows of cards: the first screen plus margin covers six of them
    records = [make_record(i) for i in range(1, 33)]
    mock_collection_service.load_prefetch_wall.return_value = records
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, content=b"jpeg", headers={"content-type": "image/jpeg"})

    real_client = httpx.AsyncClient
    mocker.patch(
        "metwall.core.command_handler.httpx.AsyncClient",
        side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    asyncio.run(command_handler.handle_wall(download_dir=tmp_path))

    first_screen = {f"/{i}.jpg" for i in range(1, 25)}
    assert set(requested[:24]) == first_screen
    assert sorted(requested) == sorted(f"/{i}.jpg" for i in range(1, 33))
    mock_ui.display_info.assert_any_call(f"Downloaded 32/32 images to {tmp_path}")
    mock_ui.display_warning.assert_not_called()

def test_clear_cache(command_handler, mock_record_cache, mock_ui):
    command_handler.handle_clear_cache("l1")
    mock_record_cache.clear.assert_called_once_with("l1")
    mock_ui.display_info.assert_called_once_with("Cache cleared (level: l1).")

def test_clear_cache_invalid_level(command_handler, mock_record_cache, mock_ui):
    mock_record_cache.clear.side_effect = ValueError("Invalid cache level 'x'.")
    command_handler.handle_clear_cache("x")
    mock_ui.display_error.assert_called_once_with("Invalid cache level 'x'.")
    mock_ui.display_info.assert_not_called()
