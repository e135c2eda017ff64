import pytest

from data_feed_exporter.context import reset_application_context
from data_feed_exporter.jobs.supervisor import reset_job_supervisor
from data_feed_exporter.metrics import reset_metrics_state
from data_feed_exporter.runtime_settings import reset_runtime_settings_cache


@pytest.fixture(autouse=True)
def reset_exporter_state() -> None:
    reset_metrics_state()
    reset_application_context()
    reset_runtime_settings_cache()
    reset_job_supervisor()
    yield
    reset_metrics_state()
    reset_application_context()
    reset_runtime_settings_cache()
    reset_job_supervisor()
