"""Chainlink data feed answers exposed as gauges."""

from __future__ import annotations

from web3 import Web3

from .base import ContractCallJob, build_call_data

NAME_CHAINLINK_DATA_FEED = "chainlink_data_feed"

# 0x50d25bcd
LATEST_ANSWER_SELECTOR = bytes(Web3.keccak(text="latestAnswer()")[:4])

# latestAnswer() takes no arguments, so the ABI-encoded call is the bare selector.
CALL_PADDING_BYTES = 0


class ChainlinkDataFeedJob(ContractCallJob):
    """Publish ``latestAnswer()`` of each configured aggregator contract."""

    NAME = NAME_CHAINLINK_DATA_FEED
    DOCUMENTATION = "The latest answer of a Chainlink data feed contract."
    CALL_DATA = build_call_data(LATEST_ANSWER_SELECTOR, CALL_PADDING_BYTES)


__all__ = [
    "CALL_PADDING_BYTES",
    "ChainlinkDataFeedJob",
    "LATEST_ANSWER_SELECTOR",
    "NAME_CHAINLINK_DATA_FEED",
]
