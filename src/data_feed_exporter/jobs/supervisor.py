"""Supervisor that owns the asyncio tasks of every polling job."""

from __future__ import annotations

import asyncio
import threading
from typing import Protocol, runtime_checkable

from ..logging import build_log_extra, get_logger

LOGGER = get_logger(__name__)


@runtime_checkable
class JobProtocol(Protocol):
    @property
    def name(self) -> str: ...

    async def start(self, stop: asyncio.Event) -> None: ...


class JobSupervisor:
    """Registers jobs by name and runs each one in its own task.

    All jobs share one stop event. Shutdown sets it, waits for the loops to
    return at their next wait point, and cancels whatever is still running
    once the timeout expires.

    Attributes:
        jobs: Registered jobs keyed by name.
        tasks: Running tasks keyed by job name.
    """

    def __init__(self) -> None:
        self.jobs: dict[str, JobProtocol] = {}
        self.tasks: dict[str, asyncio.Task] = {}
        self._stop: asyncio.Event | None = None
        self._lock = threading.Lock()

    def register(self, job: JobProtocol) -> None:
        """Register a job; names must be unique."""

        with self._lock:
            if job.name in self.jobs:
                raise ValueError(f"A job named '{job.name}' is already registered.")

            self.jobs[job.name] = job

    def start(self) -> list[asyncio.Task]:
        """Start every registered job. Must be called from a running event loop.

        Calling it again while tasks are running returns the existing tasks.
        """

        with self._lock:
            if self.tasks:
                LOGGER.debug(
                    "Reusing existing job tasks",
                    extra=build_log_extra(additional={"task_count": len(self.tasks)}),
                )
                return list(self.tasks.values())

            self._stop = asyncio.Event()

            for name, job in self.jobs.items():
                self.tasks[name] = asyncio.create_task(job.start(self._stop), name=f"job:{name}")

            LOGGER.debug(
                "Started %d job task(s)",
                len(self.tasks),
                extra=build_log_extra(additional={"task_count": len(self.tasks)}),
            )

            return list(self.tasks.values())

    def get_active_task_count(self) -> int:
        with self._lock:
            return sum(1 for task in self.tasks.values() if not task.done())

    async def shutdown(self, timeout_seconds: float = 5.0) -> None:
        """Stop every job, cancelling tasks that outlive ``timeout_seconds``."""

        with self._lock:
            tasks = [task for task in self.tasks.values() if not task.done()]
            stop = self._stop
            self.tasks = {}
            self._stop = None

        if stop is not None:
            stop.set()

        if not tasks:
            return

        done, pending = await asyncio.wait(tasks, timeout=timeout_seconds)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                LOGGER.error(
                    "Job task %s failed.",
                    task.get_name(),
                    exc_info=task.exception(),
                )

        if pending:
            LOGGER.warning(
                "%d job task(s) did not stop within %s seconds; cancelling.",
                len(pending),
                timeout_seconds,
                extra=build_log_extra(additional={"timeout_seconds": timeout_seconds}),
            )

            for task in pending:
                task.cancel()

            await asyncio.gather(*pending, return_exceptions=True)

        LOGGER.debug(
            "All job tasks stopped",
            extra=build_log_extra(additional={"stopped_count": len(tasks)}),
        )

    def reset(self) -> None:
        """Forget registered jobs and tasks (useful for testing)."""
        with self._lock:
            self.jobs = {}
            self.tasks = {}
            self._stop = None


_job_supervisor: JobSupervisor | None = None
_supervisor_lock = threading.Lock()


def get_job_supervisor() -> JobSupervisor:
    """Return the process-wide JobSupervisor instance."""
    global _job_supervisor

    with _supervisor_lock:
        if _job_supervisor is None:
            _job_supervisor = JobSupervisor()

        return _job_supervisor


def reset_job_supervisor() -> None:
    """Reset the process-wide JobSupervisor (useful for testing)."""
    with _supervisor_lock:
        if _job_supervisor is not None:
            _job_supervisor.reset()


__all__ = [
    "JobProtocol",
    "JobSupervisor",
    "get_job_supervisor",
    "reset_job_supervisor",
]
