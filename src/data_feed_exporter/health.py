"""Health and readiness reporting for the polling jobs."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from fastapi import status

from .metrics import JOB_LAST_FAILURES, JOB_LAST_TICK, REGISTERED_JOBS
from .settings import get_settings

SETTINGS = get_settings()
READINESS_STALE_THRESHOLD_SECONDS = SETTINGS.health.readiness_stale_threshold_seconds


def _format_timestamp(value: float) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def generate_health_report() -> Tuple[str, int, List[Dict[str, object]]]:
    """Summarize the last poll cycle of every registered job.

    A job whose last cycle had failing targets is ``degraded``: its other
    targets were still published and the failing ones keep their last value.
    """
    if not REGISTERED_JOBS:
        return "ok", status.HTTP_200_OK, []

    if not JOB_LAST_TICK:
        return "initializing", status.HTTP_503_SERVICE_UNAVAILABLE, []

    job_details: List[Dict[str, object]] = []
    any_degraded = False

    for job in sorted(REGISTERED_JOBS):
        last_tick = JOB_LAST_TICK.get(job)

        if last_tick is None:
            job_details.append({"job": job, "status": "pending"})
            continue

        failures = JOB_LAST_FAILURES.get(job, 0)

        if failures:
            any_degraded = True

        job_details.append(
            {
                "job": job,
                "status": "degraded" if failures else "ok",
                "failed_targets": failures,
                "last_tick_timestamp": _format_timestamp(last_tick),
            }
        )

    overall_status = "degraded" if any_degraded else "ok"

    return overall_status, status.HTTP_200_OK, job_details


def generate_readiness_report() -> Tuple[bool, List[Dict[str, str]]]:
    """Ready once every job has completed a poll cycle recently."""
    if not REGISTERED_JOBS:
        return True, []

    threshold = time.time() - READINESS_STALE_THRESHOLD_SECONDS

    all_ready = True
    job_entries: List[Dict[str, str]] = []

    for job in sorted(REGISTERED_JOBS):
        last_tick = JOB_LAST_TICK.get(job)

        ready = last_tick is not None and last_tick >= threshold

        if not ready:
            all_ready = False

        entry: Dict[str, str] = {
            "job": job,
            "status": "ready" if ready else "not_ready",
        }

        if last_tick is not None:
            entry["last_tick_timestamp"] = _format_timestamp(last_tick)

        job_entries.append(entry)

    return all_ready, job_entries


__all__ = [
    "READINESS_STALE_THRESHOLD_SECONDS",
    "generate_health_report",
    "generate_readiness_report",
]
