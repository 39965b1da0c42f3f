import asyncio
import pytest

from metwall.domain.events.api_events import OperationAdmitted
from metwall.infrastructure.resilience.scheduler import PoliteScheduler

def test_scheduler_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        PoliteScheduler(max_concurrency=0)

def test_concurrency_never_exceeds_cap():
    """Six slow operations through a cap of 2 never overlap by more than 2."""
    in_flight = 0
    peak = 0

    async def operation():
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.02)
        in_flight -= 1
        return "done"

    async def main():
        scheduler = PoliteScheduler(max_concurrency=2, min_gap_s=0.0)
        results = await asyncio.gather(*(scheduler.submit(operation) for _ in range(6)))
        assert scheduler.active == 0
        assert scheduler.pending == 0
        return results

    results = asyncio.run(main())

    assert results == ["done"] * 6
    assert peak == 2

def test_start_times_respect_minimum_gap():
    """Consecutive admissions are at least min_gap_s apart, even across slots."""
    admitted = []

    def listener(event):
        if isinstance(event, OperationAdmitted):
            admitted.append(event)

    async def quick():
        return None

    async def main():
        scheduler = PoliteScheduler(max_concurrency=4, min_gap_s=0.05, event_listener=listener)
        await asyncio.gather(*(scheduler.submit(quick) for _ in range(5)))

    asyncio.run(main())

    starts = [event.started_at for event in admitted]
    assert len(starts) == 5
    gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
    assert all(gap >= 0.05 for gap in gaps), gaps
    assert all(event.active <= 4 for event in admitted)

def test_operations_start_in_submission_order():
    started = []

    def make_operation(n):
        async def operation():
            started.append(n)
            await asyncio.sleep(0)
            return n
        return operation

    async def main():
        scheduler = PoliteScheduler(max_concurrency=1, min_gap_s=0.0)
        return await asyncio.gather(*(scheduler.submit(make_operation(n)) for n in range(5)))

    assert asyncio.run(main()) == [0, 1, 2, 3, 4]
    assert started == [0, 1, 2, 3, 4]

def test_failure_is_relayed_and_scheduler_keeps_going():
    async def boom():
        raise ValueError("upstream exploded")

    async def fine():
        return 42

    async def main():
        scheduler = PoliteScheduler(max_concurrency=1, min_gap_s=0.0)
        failing = asyncio.ensure_future(scheduler.submit(boom))
        succeeding = asyncio.ensure_future(scheduler.submit(fine))
        with pytest.raises(ValueError, match="upstream exploded"):
            await failing
        assert await succeeding == 42
        assert scheduler.active == 0

    asyncio.run(main())

def test_pacing_uses_injected_clock():
    """With a frozen clock every admission after the first waits the full gap."""
    waits = []

    async def fake_sleep(delay):
        waits.append(delay)
        clock.now += delay

    class Clock:
        now = 0.0
        def __call__(self):
            return self.now

    clock = Clock()

    async def quick():
        return None

    async def main():
        scheduler = PoliteScheduler(max_concurrency=2, min_gap_s=0.25, clock=clock, sleep=fake_sleep)
        await asyncio.gather(*(scheduler.submit(quick) for _ in range(3)))

    asyncio.run(main())

    assert waits == [0.25, 0.25]
