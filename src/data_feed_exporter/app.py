from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .api import register_routes
from .config import resolve_config_path
from .context import (
    ApplicationContext,
    default_rpc_factory,
    get_application_context,
    reset_application_context,
    set_application_context,
)
from .exceptions import ConfigError
from .jobs.supervisor import get_job_supervisor
from .logging import build_log_extra, configure_logging, get_logger
from .metrics import MetricsStoreProtocol, get_metrics, set_metrics
from .runtime_settings import RuntimeSettings
from .settings import get_settings

SETTINGS = get_settings()

configure_logging(SETTINGS)
LOGGER = get_logger(__name__)


APP_TITLE = "Data Feed Prometheus Exporter"
APP_DESCRIPTION = "Exposes on-chain data feed answers as Prometheus metrics."


def _load_context() -> ApplicationContext:
    try:
        return get_application_context()
    except FileNotFoundError:
        config_path = resolve_config_path(SETTINGS)

        LOGGER.warning(
            "Configuration file not found at %s; no jobs will be started.",
            config_path,
            extra=build_log_extra(additional={"config_path": str(config_path)}),
        )
        context = ApplicationContext(
            metrics=get_metrics(),
            runtime=RuntimeSettings(
                app=SETTINGS,
                exporter=None,
                config_path=config_path,
            ),
            rpc_factory=default_rpc_factory,
        )
        set_application_context(context)
        return context
    except ConfigError as exc:
        LOGGER.error("Configuration validation error: %s", exc)
        raise


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the polling jobs on startup and stop them on shutdown.

    Job construction registers the metric families; a registration failure
    aborts startup.
    """

    context = _load_context()

    jobs = context.build_jobs()

    context.metrics.exporter.up.set(1)

    supervisor = get_job_supervisor()

    for job in jobs:
        supervisor.register(job)

    app.state.context = context
    app.state.jobs = jobs
    app.state.job_tasks = supervisor.start()

    try:
        yield
    finally:
        context.metrics.exporter.up.set(0)

        await supervisor.shutdown(timeout_seconds=SETTINGS.poller.shutdown_timeout_seconds)

        supervisor.reset()
        app.state.job_tasks = []

        reset_application_context()
        app.state.context = None


def create_app(
    *,
    metrics: MetricsStoreProtocol | None = None,
    context: ApplicationContext | None = None,
) -> FastAPI:
    """Create a FastAPI instance configured for the data feed exporter.

    Args:
        metrics: Optional metrics store for dependency injection (defaults to global metrics).
        context: Optional application context for dependency injection (defaults to global context).

    Returns:
        FastAPI application instance with all routes registered.
    """

    if metrics is not None:
        set_metrics(metrics)
        reset_application_context()

    if context is not None:
        set_application_context(context)

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        lifespan=_lifespan,
    )

    register_routes(app)

    return app


app = create_app()
