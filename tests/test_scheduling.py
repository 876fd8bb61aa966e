import asyncio

import pytest

from progress_sync.infrastructure.scheduling import Debouncer, PeriodicTask


@pytest.mark.asyncio
async def test_debouncer_restarts_window():
    """Тест: каждый schedule перезапускает окно тишины"""
    calls = []
    debouncer = Debouncer(0.05)

    async def cb(n):
        calls.append(n)

    for n in range(3):
        debouncer.schedule("course", lambda n=n: cb(n))
        await asyncio.sleep(0.01)
    assert calls == []

    await asyncio.sleep(0.1)
    assert calls == [2]
    # сработавший таймер больше не отменяется
    assert debouncer.cancel("course") is False

@pytest.mark.asyncio
async def test_debouncer_cancel_all():
    calls = []
    debouncer = Debouncer(0.02)

    async def cb():
        calls.append(1)

    debouncer.schedule(1, cb)
    debouncer.schedule(2, cb)
    assert debouncer.cancel_all() == 2
    await asyncio.sleep(0.05)
    assert calls == []

def test_debouncer_without_event_loop():
    """Тест: вне event loop schedule не падает и не ставит таймер"""
    calls = []

    async def cb():
        calls.append(1)

    debouncer = Debouncer(0.01)
    assert debouncer.schedule("course", cb) is None
    assert debouncer.cancel_all() == 0
    assert calls == []

@pytest.mark.asyncio
async def test_periodic_task_runs_and_stops():
    ticks = []
    task = PeriodicTask(0.01, lambda: ticks.append(1))
    task.start()
    assert task.running
    await asyncio.sleep(0.05)
    await task.stop()
    assert not task.running
    count = len(ticks)
    assert count >= 1
    await asyncio.sleep(0.03)
    assert len(ticks) == count

@pytest.mark.asyncio
async def test_periodic_task_survives_action_errors():
    ticks = []

    def action():
        ticks.append(1)
        raise RuntimeError("sweep failed")

    task = PeriodicTask(0.01, action)
    task.start()
    await asyncio.sleep(0.05)
    await task.stop()
    assert len(ticks) >= 2

@pytest.mark.asyncio
async def test_periodic_task_disabled_with_zero_interval():
    task = PeriodicTask(0, lambda: None)
    task.start()
    assert not task.running
