import asyncio

from metwall.domain.events.api_events import OperationAdmitted
from metwall.infrastructure.cache.record_cache import RecordCacheImpl
from metwall.core.services.collection_service import CollectionService

def test_batch_lookup_is_paced_ordered_and_cached(make_stack):
    """Three ids through a pool of 3 and a scheduler of 2 / 0.22s.

    The first pass is paced and bounded; the second pass never goes upstream.
    """
    admitted = []

    def listener(event):
        if isinstance(event, OperationAdmitted):
            admitted.append(event)

    stack = make_stack(max_concurrency=2, min_gap_s=0.22, event_listener=listener)
    for object_id in (1, 2, 3):
        stack.api.add_object(object_id, title=f"Card {object_id}")

    async def main():
        first = await stack.service.fetch_objects([1, 2, 3], pool=3)
        calls_after_first = len(stack.api.calls)
        second = await stack.service.fetch_objects([1, 2, 3], pool=3)
        return first, calls_after_first, second

    first, calls_after_first, second = asyncio.run(main())

    assert [r.title for r in first] == ["Card 1", "Card 2", "Card 3"]
    assert second == first
    assert calls_after_first == 3
    assert len(stack.api.calls) == 3

    starts = [event.started_at for event in admitted]
    assert len(starts) == 3
    assert all(later - earlier >= 0.22 for earlier, later in zip(starts, starts[1:]))
    assert all(event.active <= 2 for event in admitted)

def test_records_survive_into_a_new_session(make_stack, memory_store):
    """A second cache over the same durable store answers without any upstream call."""
    stack = make_stack()
    stack.api.add_object(436535, title="Wheat Field with Cypresses")

    async def first_session():
        record = await stack.service.fetch_object(436535)
        stack.record_cache.flush()
        return record

    original = asyncio.run(first_session())

    second_session = CollectionService(
        api_retry_service=stack.api_retry_service,
        record_cache=RecordCacheImpl(store=memory_store),
    )
    restored = asyncio.run(second_session.fetch_object(436535))

    assert restored == original
    assert stack.api.calls_to("/objects/436535") == 1
