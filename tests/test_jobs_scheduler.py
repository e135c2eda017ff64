from __future__ import annotations

import asyncio
import importlib
import logging

import pytest

scheduler_module = importlib.import_module("data_feed_exporter.jobs.scheduler")

PeriodicTask = scheduler_module.PeriodicTask


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_first_tick_runs_immediately_and_stop_ends_loop(monkeypatch: pytest.MonkeyPatch) -> None:
    stop = asyncio.Event()
    ticks: list[int] = []
    waits: list[float] = []

    async def _tick() -> None:
        ticks.append(len(ticks))

        if len(ticks) == 3:
            stop.set()

    async def _wait_for_stop(event: asyncio.Event, timeout: float) -> bool:
        waits.append(timeout)
        return event.is_set()

    monkeypatch.setattr(scheduler_module, "wait_for_stop", _wait_for_stop)

    task = PeriodicTask("job", 15, _tick)

    await task.run(stop)

    assert ticks == [0, 1, 2]
    # One wait between each pair of ticks and one that observes the stop.
    assert waits == [15, 15, 15]


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_stop_set_before_start_skips_every_tick() -> None:
    stop = asyncio.Event()
    stop.set()
    ticks: list[int] = []

    async def _tick() -> None:
        ticks.append(1)

    await PeriodicTask("job", 1, _tick).run(stop)

    assert ticks == []


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_stop_interrupts_wait_without_another_tick() -> None:
    stop = asyncio.Event()
    first_tick = asyncio.Event()
    ticks: list[int] = []

    async def _tick() -> None:
        ticks.append(1)
        first_tick.set()

    runner = asyncio.create_task(PeriodicTask("job", 3600, _tick).run(stop))

    await asyncio.wait_for(first_tick.wait(), timeout=5)

    stop.set()

    await asyncio.wait_for(runner, timeout=5)

    assert ticks == [1]


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_cancellation_propagates(caplog: pytest.LogCaptureFixture) -> None:
    stop = asyncio.Event()
    first_tick = asyncio.Event()

    async def _tick() -> None:
        first_tick.set()

    caplog.set_level(logging.DEBUG, logger="data_feed_exporter.jobs.scheduler")

    runner = asyncio.create_task(PeriodicTask("job", 3600, _tick).run(stop))

    await asyncio.wait_for(first_tick.wait(), timeout=5)

    runner.cancel()

    with pytest.raises(asyncio.CancelledError):
        await runner

    assert any("cancelled" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_tick_exception_is_logged_and_loop_continues(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    stop = asyncio.Event()
    calls = 0

    async def _tick() -> None:
        nonlocal calls

        calls += 1

        if calls == 1:
            raise RuntimeError("boom")

        stop.set()

    async def _wait_for_stop(event: asyncio.Event, timeout: float) -> bool:
        return event.is_set()

    monkeypatch.setattr(scheduler_module, "wait_for_stop", _wait_for_stop)

    caplog.set_level(logging.ERROR, logger="data_feed_exporter.jobs.scheduler")

    await PeriodicTask("job", 1, _tick).run(stop)

    assert calls == 2
    assert any("Unexpected error during job poll cycle" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_periodic_task_is_single_use() -> None:
    stop = asyncio.Event()
    stop.set()

    async def _tick() -> None:
        return None

    task = PeriodicTask("job", 1, _tick)

    await task.run(stop)

    assert task.started is True

    with pytest.raises(RuntimeError, match="already been started"):
        await task.run(stop)


@pytest.mark.parametrize("interval", [0, -1, -0.5])
def test_non_positive_interval_is_rejected(interval: float) -> None:
    async def _tick() -> None:
        return None

    with pytest.raises(ValueError, match="must be positive"):
        PeriodicTask("job", interval, _tick)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_wait_for_stop_reports_event_or_timeout() -> None:
    stop = asyncio.Event()

    assert await scheduler_module.wait_for_stop(stop, 0.01) is False

    stop.set()

    assert await scheduler_module.wait_for_stop(stop, 10) is True
