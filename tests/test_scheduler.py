import asyncio

from core.entities import CycleState
from services.scheduler import Scheduler, SchedulerContext


async def test_trigger_while_running_is_dropped():
    started = asyncio.Event()
    release = asyncio.Event()
    calls = 0

    async def cycle():
        nonlocal calls
        calls += 1
        started.set()
        await release.wait()

    scheduler = Scheduler(cycle)
    first = asyncio.create_task(scheduler.trigger())
    await started.wait()

    assert scheduler.context.state is CycleState.RUNNING
    assert await scheduler.trigger() is False
    assert await scheduler.trigger() is False
    assert calls == 1

    release.set()
    assert await first is True
    assert scheduler.context.state is CycleState.IDLE
    assert scheduler.context.skipped_triggers == 2

    assert await scheduler.trigger() is True
    assert calls == 2


async def test_failed_cycle_returns_to_idle():
    async def cycle():
        raise RuntimeError("boom")

    scheduler = Scheduler(cycle)

    assert await scheduler.trigger() is True
    assert scheduler.context.state is CycleState.IDLE
    assert scheduler.context.cycles_run == 1


async def test_run_forever_stops_after_in_flight_cycle():
    finished = []
    scheduler = None

    async def cycle():
        await asyncio.sleep(0.01)
        finished.append(len(finished) + 1)
        if len(finished) == 3:
            scheduler.stop()

    scheduler = Scheduler(cycle, interval_seconds=0.02)
    await asyncio.wait_for(scheduler.run_forever(), timeout=5)

    assert len(finished) >= 3
    assert scheduler.context.state is CycleState.IDLE


async def test_slow_cycles_are_not_overlapped():
    active = 0
    max_active = 0
    scheduler = None

    async def cycle():
        nonlocal active, max_active
        active += 1
        max_active = max(max_active, active)
        await asyncio.sleep(0.05)
        active -= 1
        if scheduler.context.cycles_run >= 1:
            scheduler.stop()

    scheduler = Scheduler(cycle, interval_seconds=0.01)
    await asyncio.wait_for(scheduler.run_forever(), timeout=5)

    assert max_active == 1
    assert scheduler.context.skipped_triggers > 0


def test_context_reset():
    context = SchedulerContext(state=CycleState.RUNNING, cycles_run=4, skipped_triggers=2)

    context.reset()

    assert context == SchedulerContext()
