from __future__ import annotations

import asyncio
import logging

import pytest

from data_feed_exporter.jobs.supervisor import JobSupervisor, get_job_supervisor, reset_job_supervisor


class StoppableJob:
    def __init__(self, name: str) -> None:
        self._name = name
        self.started = asyncio.Event()
        self.stopped = False

    @property
    def name(self) -> str:
        return self._name

    async def start(self, stop: asyncio.Event) -> None:
        self.started.set()
        await stop.wait()
        self.stopped = True


class StubbornJob(StoppableJob):
    async def start(self, stop: asyncio.Event) -> None:
        self.started.set()
        await asyncio.sleep(3600)


class FailingJob(StoppableJob):
    async def start(self, stop: asyncio.Event) -> None:
        self.started.set()
        await stop.wait()
        raise RuntimeError("job exploded")


def test_register_rejects_duplicate_names() -> None:
    supervisor = JobSupervisor()

    supervisor.register(StoppableJob("chainlink_data_feed"))

    with pytest.raises(ValueError, match="already registered"):
        supervisor.register(StoppableJob("chainlink_data_feed"))


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_start_runs_each_job_and_shutdown_stops_them() -> None:
    supervisor = JobSupervisor()
    jobs = [StoppableJob("a"), StoppableJob("b")]

    for job in jobs:
        supervisor.register(job)

    tasks = supervisor.start()

    assert sorted(task.get_name() for task in tasks) == ["job:a", "job:b"]

    await asyncio.wait_for(asyncio.gather(*(job.started.wait() for job in jobs)), timeout=5)

    assert supervisor.get_active_task_count() == 2
    assert supervisor.start() == tasks

    await supervisor.shutdown(timeout_seconds=5)

    assert all(job.stopped for job in jobs)
    assert all(task.done() and not task.cancelled() for task in tasks)
    assert supervisor.get_active_task_count() == 0


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_shutdown_cancels_jobs_that_ignore_stop(caplog: pytest.LogCaptureFixture) -> None:
    supervisor = JobSupervisor()
    job = StubbornJob("stubborn")
    supervisor.register(job)

    [task] = supervisor.start()

    await asyncio.wait_for(job.started.wait(), timeout=5)

    caplog.set_level(logging.WARNING, logger="data_feed_exporter.jobs.supervisor")

    await supervisor.shutdown(timeout_seconds=0.05)

    assert task.cancelled()
    assert any("did not stop" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_shutdown_logs_failed_jobs(caplog: pytest.LogCaptureFixture) -> None:
    supervisor = JobSupervisor()
    supervisor.register(FailingJob("broken"))

    job = supervisor.jobs["broken"]

    [task] = supervisor.start()

    await asyncio.wait_for(job.started.wait(), timeout=5)

    caplog.set_level(logging.ERROR, logger="data_feed_exporter.jobs.supervisor")

    await supervisor.shutdown(timeout_seconds=5)

    assert task.done()
    assert any(record.getMessage() == "Job task job:broken failed." for record in caplog.records)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_shutdown_without_start_is_a_no_op() -> None:
    supervisor = JobSupervisor()

    await supervisor.shutdown(timeout_seconds=0.01)

    assert supervisor.tasks == {}


def test_global_supervisor_is_shared_and_resettable() -> None:
    supervisor = get_job_supervisor()
    supervisor.register(StoppableJob("a"))

    assert get_job_supervisor() is supervisor

    reset_job_supervisor()

    assert get_job_supervisor().jobs == {}
