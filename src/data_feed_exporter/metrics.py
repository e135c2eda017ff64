"""Prometheus metric registry and helpers for data feed exporter state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence, runtime_checkable

from prometheus_client import CollectorRegistry, Counter, Gauge

from .exceptions import MetricRegistrationError


@dataclass(slots=True)
class ExporterMetrics:
    up: Gauge
    configured_targets: Gauge
    tick_timestamp: Gauge
    tick_duration: Gauge
    target_errors: Counter


@runtime_checkable
class MetricsStoreProtocol(Protocol):
    registry: CollectorRegistry
    exporter: ExporterMetrics


@dataclass(slots=True)
class MetricsBundle(MetricsStoreProtocol):
    registry: CollectorRegistry
    exporter: ExporterMetrics


def create_metrics(registry: CollectorRegistry | None = None) -> MetricsBundle:
    registry = registry or CollectorRegistry()

    exporter = ExporterMetrics(
        up=Gauge(
            "data_feed_exporter_up",
            "Indicates whether the exporter is available (1 for up, 0 for down).",
            registry=registry,
        ),
        configured_targets=Gauge(
            "data_feed_exporter_configured_targets",
            "Number of targets configured for each polling job.",
            labelnames=("job",),
            registry=registry,
        ),
        tick_timestamp=Gauge(
            "data_feed_exporter_tick_timestamp_seconds",
            "Unix timestamp of the most recently completed poll cycle.",
            labelnames=("job",),
            registry=registry,
        ),
        tick_duration=Gauge(
            "data_feed_exporter_tick_duration_seconds",
            "Duration in seconds of the most recently completed poll cycle.",
            labelnames=("job",),
            registry=registry,
        ),
        target_errors=Counter(
            "data_feed_exporter_target_errors",
            "Number of per-target poll failures, by error category.",
            labelnames=("job", "error_type"),
            registry=registry,
        ),
    )

    return MetricsBundle(registry=registry, exporter=exporter)


@dataclass(slots=True)
class BalanceGaugeFamily:
    """A gauge family whose constant labels are bound at registration.

    prometheus_client has no notion of constant labels, so they are carried
    as leading label names and filled in on every ``labels`` call.
    """

    gauge: Gauge

    labelnames: tuple[str, ...]

    const_labels: dict[str, str] = field(default_factory=dict)

    def labels(self, *values: str) -> Gauge:
        return self.gauge.labels(*self.const_labels.values(), *values)

    def get(self, *values: str) -> float | None:
        """Return the current value for a label combination, or None if unset."""

        for metric in self.gauge.collect():
            for sample in metric.samples:
                if sample.labels == self._label_dict(values):
                    return sample.value

        return None

    def _label_dict(self, values: Sequence[str]) -> dict[str, str]:
        return dict(zip((*self.const_labels.keys(), *self.labelnames), (*self.const_labels.values(), *values)))


def register_balance_gauge(
    registry: CollectorRegistry,
    *,
    namespace: str,
    metric_type: str,
    documentation: str,
    labelnames: Sequence[str],
    const_labels: Mapping[str, str] | None = None,
) -> BalanceGaugeFamily:
    """Register ``<namespace>_<metric_type>_balance`` in the registry.

    Raises:
        MetricRegistrationError: If the name is invalid or already registered.
    """

    bound_labels = dict(const_labels or {})
    metric_name = f"{namespace}_{metric_type}_balance"

    try:
        gauge = Gauge(
            "balance",
            documentation,
            labelnames=(*bound_labels.keys(), *labelnames),
            namespace=f"{namespace}_{metric_type}",
            registry=registry,
        )
    except ValueError as exc:
        raise MetricRegistrationError(
            f"Unable to register metric {metric_name}: {exc}",
            metric_name=metric_name,
        ) from exc

    return BalanceGaugeFamily(gauge=gauge, labelnames=tuple(labelnames), const_labels=bound_labels)


_METRICS: MetricsStoreProtocol = create_metrics()


def get_metrics() -> MetricsStoreProtocol:
    return _METRICS


def set_metrics(bundle: MetricsStoreProtocol) -> None:
    global _METRICS
    _METRICS = bundle


def reset_metrics_state(registry: CollectorRegistry | None = None) -> MetricsStoreProtocol:
    """Rebuild the metrics bundle and clear all cached job state."""

    bundle = create_metrics(registry)
    set_metrics(bundle)

    REGISTERED_JOBS.clear()
    JOB_LAST_TICK.clear()
    JOB_LAST_FAILURES.clear()

    return bundle


REGISTERED_JOBS: set[str] = set()

JOB_LAST_TICK: dict[str, float] = {}

JOB_LAST_FAILURES: dict[str, int] = {}


def set_configured_targets(job: str, count: int, metrics: MetricsStoreProtocol | None = None) -> None:
    metrics = metrics or get_metrics()

    REGISTERED_JOBS.add(job)
    metrics.exporter.configured_targets.labels(job).set(count)


def record_tick(
    job: str,
    *,
    duration_seconds: float,
    failures: int,
    timestamp: float | None = None,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    """Record a completed poll cycle for the given job."""

    metrics = metrics or get_metrics()

    now = time.time() if timestamp is None else timestamp

    metrics.exporter.tick_timestamp.labels(job).set(now)
    metrics.exporter.tick_duration.labels(job).set(duration_seconds)
    JOB_LAST_TICK[job] = now
    JOB_LAST_FAILURES[job] = failures


def record_target_error(
    job: str,
    error_type: str,
    metrics: MetricsStoreProtocol | None = None,
) -> None:
    metrics = metrics or get_metrics()

    metrics.exporter.target_errors.labels(job, error_type).inc()


__all__ = [
    "BalanceGaugeFamily",
    "ExporterMetrics",
    "JOB_LAST_FAILURES",
    "JOB_LAST_TICK",
    "MetricsBundle",
    "MetricsStoreProtocol",
    "REGISTERED_JOBS",
    "create_metrics",
    "get_metrics",
    "record_target_error",
    "record_tick",
    "register_balance_gauge",
    "reset_metrics_state",
    "set_configured_targets",
    "set_metrics",
]
