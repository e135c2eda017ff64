"""Runtime dependency container for wiring metrics, configs, and RPC factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .config import ExporterConfig
from .jobs import ChainlinkDataFeedJob, ContractCallJob
from .jobs.intervals import create_web3_client, determine_poll_interval_seconds
from .logging import build_log_extra, get_logger
from .metrics import MetricsStoreProtocol, get_metrics
from .rpc import RpcClient, RpcClientProtocol
from .runtime_settings import RuntimeSettings, get_runtime_settings
from .settings import AppSettings

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ApplicationContext:
    """Bundle of services required while the exporter is running."""

    metrics: MetricsStoreProtocol

    runtime: RuntimeSettings

    rpc_factory: Callable[[ExporterConfig], RpcClientProtocol]

    def create_rpc_client(self) -> RpcClientProtocol:
        """Construct the RPC client shared by every job."""

        if self.runtime.exporter is None:
            raise RuntimeError("No exporter configuration is loaded.")

        return self.rpc_factory(self.runtime.exporter)

    @property
    def settings(self) -> AppSettings:
        """Return resolved environment-driven application settings."""

        return self.runtime.app

    @property
    def exporter_config(self) -> ExporterConfig | None:
        return self.runtime.exporter

    def build_jobs(self) -> list[ContractCallJob]:
        """Construct one job per metric type that has targets configured.

        Raises:
            MetricRegistrationError: If a job's gauge family cannot be registered.
        """

        config = self.runtime.exporter

        if config is None:
            return []

        jobs: list[ContractCallJob] = []

        if not config.chainlink_data_feeds:
            LOGGER.info(
                "No chainlink_data_feed targets configured.",
                extra=build_log_extra(job=ChainlinkDataFeedJob.NAME),
            )
            return jobs

        jobs.append(
            ChainlinkDataFeedJob(
                self.create_rpc_client(),
                config.chainlink_data_feeds,
                namespace=config.namespace,
                const_labels=config.const_labels,
                interval_seconds=determine_poll_interval_seconds(config),
                metrics=self.metrics,
            )
        )

        return jobs


def default_rpc_factory(config: ExporterConfig) -> RpcClientProtocol:
    """Create an `RpcClient` for the configured endpoint."""

    return RpcClient(create_web3_client(config), config.rpc_url)


def create_default_context() -> ApplicationContext:
    """Build an application context from the resolved settings and metrics."""

    return ApplicationContext(
        metrics=get_metrics(),
        runtime=get_runtime_settings(),
        rpc_factory=default_rpc_factory,
    )


_APPLICATION_CONTEXT: ApplicationContext | None = None


def get_application_context() -> ApplicationContext:
    """Return the current application context, creating one when absent."""

    global _APPLICATION_CONTEXT

    if _APPLICATION_CONTEXT is None:
        _APPLICATION_CONTEXT = create_default_context()

    return _APPLICATION_CONTEXT


def set_application_context(context: ApplicationContext | None) -> None:
    """Replace the globally cached application context."""

    global _APPLICATION_CONTEXT

    _APPLICATION_CONTEXT = context


def reset_application_context() -> None:
    """Clear the cached context so the next access rebuilds dependencies."""

    set_application_context(None)


__all__ = [
    "ApplicationContext",
    "create_default_context",
    "default_rpc_factory",
    "get_application_context",
    "reset_application_context",
    "set_application_context",
]
