"""Poll interval resolution and Web3 client construction."""

from __future__ import annotations

import re

from web3 import HTTPProvider, Web3

from ..config import ExporterConfig
from ..logging import get_logger
from ..settings import get_settings

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

DEFAULT_POLL_INTERVAL = SETTINGS.poller.default_interval
DEFAULT_RPC_TIMEOUT_SECONDS = SETTINGS.poller.rpc_request_timeout_seconds

DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhSMH]?)\s*$")
DURATION_UNITS = {"s": 1, "m": 60, "h": 3600}


def parse_duration_to_seconds(value: str) -> int | None:
    """Parse ``N``, ``Ns``, ``Nm`` or ``Nh`` into seconds.

    A bare number is seconds and unit letters are case-insensitive. Returns
    None for anything else, including fractions and negative numbers.
    """
    match = DURATION_PATTERN.match(value)

    if match is None:
        return None

    amount, unit = match.groups()

    return int(amount) * DURATION_UNITS[unit.lower() or "s"]


DEFAULT_POLL_INTERVAL_SECONDS = parse_duration_to_seconds(DEFAULT_POLL_INTERVAL) or 15


def determine_poll_interval_seconds(config: ExporterConfig) -> int:
    """Seconds between poll cycles for ``config``.

    An invalid or non-positive interval logs a warning and falls back to
    ``DEFAULT_POLL_INTERVAL_SECONDS``.
    """
    raw_value = config.poll_interval or DEFAULT_POLL_INTERVAL

    seconds = parse_duration_to_seconds(raw_value)

    if seconds:
        return seconds

    LOGGER.warning(
        "Invalid poll_interval '%s'. Falling back to %s seconds.",
        raw_value,
        DEFAULT_POLL_INTERVAL_SECONDS,
    )

    return DEFAULT_POLL_INTERVAL_SECONDS


def create_web3_client(config: ExporterConfig, *, timeout_seconds: float | None = None) -> Web3:
    """Create a Web3 client whose HTTP requests time out after ``timeout_seconds``.

    Defaults to ``RPC_REQUEST_TIMEOUT_SECONDS``.
    """
    provider = HTTPProvider(
        config.rpc_url,
        request_kwargs={"timeout": DEFAULT_RPC_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds},
    )

    return Web3(provider)


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_RPC_TIMEOUT_SECONDS",
    "create_web3_client",
    "determine_poll_interval_seconds",
    "parse_duration_to_seconds",
]
