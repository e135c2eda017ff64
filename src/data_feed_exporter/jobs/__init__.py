"""Polling jobs for contract-backed metrics."""

from .base import ContractCallJob, TickResult, build_call_data
from .chainlink_data_feed import (
    CALL_PADDING_BYTES,
    LATEST_ANSWER_SELECTOR,
    NAME_CHAINLINK_DATA_FEED,
    ChainlinkDataFeedJob,
)
from .intervals import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_INTERVAL_SECONDS
from .scheduler import PeriodicTask, wait_for_stop
from .supervisor import JobSupervisor, get_job_supervisor, reset_job_supervisor

__all__ = [
    "CALL_PADDING_BYTES",
    "ChainlinkDataFeedJob",
    "ContractCallJob",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "JobSupervisor",
    "LATEST_ANSWER_SELECTOR",
    "NAME_CHAINLINK_DATA_FEED",
    "PeriodicTask",
    "TickResult",
    "build_call_data",
    "get_job_supervisor",
    "reset_job_supervisor",
    "wait_for_stop",
]
