"""Polling job that publishes one decoded ``eth_call`` result per target."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import ClassVar, Mapping, Sequence

from prometheus_client import CollectorRegistry
from web3 import Web3

from ..config import TARGET_LABEL_NAMES, AddressTarget
from ..decoder import decode_hex_balance
from ..exceptions import DataFeedExporterError
from ..logging import build_log_extra, get_logger, log_duration
from ..metrics import (
    BalanceGaugeFamily,
    MetricsStoreProtocol,
    get_metrics,
    record_target_error,
    record_tick,
    register_balance_gauge,
    set_configured_targets,
)
from ..rpc import ContractCall, RpcClientProtocol, _categorize_error
from .intervals import DEFAULT_POLL_INTERVAL_SECONDS
from .scheduler import PeriodicTask

LOGGER = get_logger(__name__)


def build_call_data(selector: bytes, padding_bytes: int = 0) -> str:
    """Return ``selector`` followed by ``padding_bytes`` zero bytes as hex."""

    if len(selector) != 4:
        raise ValueError(f"Function selector must be 4 bytes, got {len(selector)}.")

    return Web3.to_hex(selector + b"\x00" * padding_bytes)


@dataclass(slots=True)
class TickResult:
    """Outcome of one poll cycle."""

    updated: int = 0

    failures: list[tuple[AddressTarget, Exception]] = field(default_factory=list)


class ContractCallJob:
    """Poll a fixed read-only call on every target and publish it as a gauge.

    Subclasses name the metric type and provide the call data. The gauge
    family ``<namespace>_<NAME>_balance`` is registered on construction;
    a registration failure raises ``MetricRegistrationError``.
    """

    NAME: ClassVar[str]
    DOCUMENTATION: ClassVar[str]
    CALL_DATA: ClassVar[str]

    def __init__(
        self,
        client: RpcClientProtocol,
        targets: Sequence[AddressTarget],
        *,
        namespace: str,
        const_labels: Mapping[str, str] | None = None,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        metrics: MetricsStoreProtocol | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self._client = client
        self._targets = tuple(targets)
        self._metrics = metrics or get_metrics()

        self.balance: BalanceGaugeFamily = register_balance_gauge(
            registry or self._metrics.registry,
            namespace=namespace,
            metric_type=self.NAME,
            documentation=self.DOCUMENTATION,
            labelnames=TARGET_LABEL_NAMES,
            const_labels=const_labels,
        )

        self._task = PeriodicTask(self.NAME, interval_seconds, self._tick_in_thread)

        set_configured_targets(self.NAME, len(self._targets), self._metrics)

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def targets(self) -> tuple[AddressTarget, ...]:
        return self._targets

    @property
    def interval_seconds(self) -> float:
        return self._task.interval_seconds

    async def start(self, stop: asyncio.Event) -> None:
        """Poll immediately, then every interval until ``stop`` is set."""

        await self._task.run(stop)

    async def _tick_in_thread(self) -> TickResult:
        # web3 calls block; run the whole cycle off the event loop.
        return await asyncio.to_thread(self.tick)

    def tick(self) -> TickResult:
        """Poll every target in order, isolating failures per target."""

        result = TickResult()
        start = time.monotonic()

        with log_duration(
            LOGGER,
            "poll_cycle_completed",
            level=logging.DEBUG,
            extra=build_log_extra(job=self.name, additional={"target_count": len(self._targets)}),
        ):
            for target in self._targets:
                try:
                    self.poll_target(target)
                except Exception as exc:  # noqa: BLE001
                    context = exc.context if isinstance(exc, DataFeedExporterError) else None
                    self._report_failure(target, exc, context)
                    result.failures.append((target, exc))
                else:
                    result.updated += 1

        record_tick(
            self.name,
            duration_seconds=time.monotonic() - start,
            failures=len(result.failures),
            metrics=self._metrics,
        )

        return result

    def poll_target(self, target: AddressTarget) -> float:
        """Call the target contract, decode the result and publish it."""

        raw_value = self._client.eth_call(
            ContractCall(to=target.contract_address, data=self.CALL_DATA),
            job=self.name,
            extra=build_log_extra(job=self.name, target=target),
        )

        value = decode_hex_balance(raw_value)

        self.balance.labels(*target.label_values()).set(value)

        return value

    def _report_failure(
        self,
        target: AddressTarget,
        exc: Exception,
        context: Mapping[str, object] | None,
    ) -> None:
        error_type = _categorize_error(exc)

        record_target_error(self.name, error_type, self._metrics)

        LOGGER.error(
            "Failed to get %s balance for %s (%s): %s",
            self.name,
            target.display_name,
            target.contract_address,
            exc,
            extra=build_log_extra(
                job=self.name,
                target=target,
                additional={"error_type": error_type, **(context or {})},
            ),
        )


__all__ = ["ContractCallJob", "TickResult", "build_call_data"]
