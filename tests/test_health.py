from __future__ import annotations

import time

from fastapi import status

from data_feed_exporter.health import (
    READINESS_STALE_THRESHOLD_SECONDS,
    generate_health_report,
    generate_readiness_report,
)
from data_feed_exporter.metrics import record_tick, set_configured_targets


def test_health_ok_when_no_jobs_registered() -> None:
    assert generate_health_report() == ("ok", status.HTTP_200_OK, [])


def test_health_initializing_before_first_tick() -> None:
    set_configured_targets("chainlink_data_feed", 2)

    overall, code, details = generate_health_report()

    assert overall == "initializing"
    assert code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert details == []


def test_health_ok_after_clean_tick() -> None:
    set_configured_targets("chainlink_data_feed", 2)
    record_tick("chainlink_data_feed", duration_seconds=0.1, failures=0, timestamp=0.0)

    overall, code, details = generate_health_report()

    assert overall == "ok"
    assert code == status.HTTP_200_OK
    assert details == [
        {
            "job": "chainlink_data_feed",
            "status": "ok",
            "failed_targets": 0,
            "last_tick_timestamp": "1970-01-01T00:00:00+00:00",
        }
    ]


def test_health_degraded_when_targets_fail() -> None:
    set_configured_targets("chainlink_data_feed", 2)
    set_configured_targets("other_job", 1)
    record_tick("chainlink_data_feed", duration_seconds=0.1, failures=1)

    overall, code, details = generate_health_report()

    assert overall == "degraded"
    assert code == status.HTTP_200_OK
    assert [entry["status"] for entry in details] == ["degraded", "pending"]
    assert details[0]["failed_targets"] == 1


def test_readiness_requires_recent_tick() -> None:
    set_configured_targets("chainlink_data_feed", 1)

    ready, entries = generate_readiness_report()

    assert ready is False
    assert entries == [{"job": "chainlink_data_feed", "status": "not_ready"}]

    record_tick("chainlink_data_feed", duration_seconds=0.1, failures=0)

    ready, entries = generate_readiness_report()

    assert ready is True
    assert entries[0]["status"] == "ready"
    assert "last_tick_timestamp" in entries[0]


def test_readiness_stale_tick_is_not_ready() -> None:
    set_configured_targets("chainlink_data_feed", 1)
    record_tick(
        "chainlink_data_feed",
        duration_seconds=0.1,
        failures=0,
        timestamp=time.time() - READINESS_STALE_THRESHOLD_SECONDS - 60,
    )

    ready, entries = generate_readiness_report()

    assert ready is False
    assert entries[0]["status"] == "not_ready"


def test_readiness_without_jobs_is_ready() -> None:
    assert generate_readiness_report() == (True, [])
