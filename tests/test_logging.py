import json
import logging
import sys
from dataclasses import replace
from typing import Any

import pytest

from data_feed_exporter.config import AddressTarget
from data_feed_exporter.logging import (
    JsonFormatter,
    StructuredTextFormatter,
    build_log_extra,
    configure_logging,
    extract_log_context,
    log_duration,
)
from data_feed_exporter.settings import AppSettings, LoggingSettings, get_settings


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()

        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _build_settings(level: str, log_format: str) -> AppSettings:
    base_settings = get_settings()

    return replace(
        base_settings,
        logging=LoggingSettings(
            level=level,
            format=log_format,
            color_enabled=base_settings.logging.color_enabled,
        ),
    )


def _record(msg: str = "Polling chainlink_data_feed", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="data_feed_exporter.jobs.base",
        level=level,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_build_log_extra_includes_target_fields() -> None:
    target = AddressTarget(
        display_name="ETH / USD",
        contract_address="0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        source_address="ETH",
        destination_address="USD",
    )

    extra = build_log_extra(
        job="chainlink_data_feed",
        target=target,
        elapsed=1.2345,
        additional={"operation": "eth_call"},
    )

    assert extra == {
        "job": "chainlink_data_feed",
        "target_name": "ETH / USD",
        "target_contract": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        "target_from": "ETH",
        "target_to": "USD",
        "elapsed_seconds": 1.234,
        "operation": "eth_call",
    }


def test_build_log_extra_omits_missing_fields() -> None:
    assert build_log_extra() == {}
    assert build_log_extra(job="chainlink_data_feed") == {"job": "chainlink_data_feed"}


def test_log_duration_records_elapsed_time() -> None:
    handler = ListHandler()

    logger = logging.getLogger("data_feed_exporter.tests.logging")

    logger.setLevel(logging.DEBUG)

    logger.addHandler(handler)

    try:
        with log_duration(
            logger,
            "poll_cycle_completed",
            level=logging.INFO,
            extra={"job": "chainlink_data_feed"},
        ):
            pass
    finally:
        logger.removeHandler(handler)

    [record] = handler.records

    assert record.levelno == logging.INFO
    assert record.getMessage() == "poll_cycle_completed"

    context = extract_log_context(record)

    assert context["job"] == "chainlink_data_feed"
    assert context["elapsed_seconds"] >= 0


def test_log_duration_logs_when_block_raises() -> None:
    handler = ListHandler()

    logger = logging.getLogger("data_feed_exporter.tests.logging_failure")

    logger.setLevel(logging.DEBUG)

    logger.addHandler(handler)

    try:
        with pytest.raises(RuntimeError):
            with log_duration(logger, "poll_cycle_completed"):
                raise RuntimeError("boom")
    finally:
        logger.removeHandler(handler)

    assert len(handler.records) == 1


def test_json_formatter_includes_context() -> None:
    record = _record()
    record.job = "chainlink_data_feed"  # type: ignore[attr-defined]
    record.target_name = "feed1"  # type: ignore[attr-defined]

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "data_feed_exporter.jobs.base"
    assert payload["message"] == "Polling chainlink_data_feed"
    assert payload["job"] == "chainlink_data_feed"
    assert payload["target_name"] == "feed1"


def test_structured_formatter_appends_sorted_context() -> None:
    formatter = StructuredTextFormatter(
        "%(levelname)s [%(name)s] %(message)s",
        color_enabled=False,
    )

    record = _record(level=logging.ERROR)
    record.target_name = "feed1"  # type: ignore[attr-defined]
    record.job = "chainlink_data_feed"  # type: ignore[attr-defined]

    formatted = formatter.format(record)

    assert formatted == (
        "ERROR [data_feed_exporter.jobs.base] Polling chainlink_data_feed"
        " | job=chainlink_data_feed target_name=feed1"
    )


def test_structured_formatter_colors_level() -> None:
    formatter = StructuredTextFormatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    formatted = formatter.format(_record(level=logging.WARNING))

    assert "\033[36m" in formatted
    assert "\033[33mWARNING\033[0m" in formatted


def test_extract_log_context_ignores_color_message() -> None:
    record = _record()
    record.color_message = "Polling \033[32mchainlink_data_feed\033[0m"  # type: ignore[attr-defined]

    assert "color_message" not in extract_log_context(record)


def test_configure_logging_uses_json_formatter(monkeypatch: pytest.MonkeyPatch) -> None:
    captured_config: dict[str, Any] = {}

    def _capture_config(config: dict[str, Any]) -> None:
        captured_config["value"] = config

    monkeypatch.setattr(logging.config, "dictConfig", _capture_config)

    configure_logging(_build_settings(level="DEBUG", log_format="json"))

    config = captured_config["value"]

    assert config["formatters"]["standard"]["()"] is JsonFormatter
    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["uvicorn"]["handlers"] == ["default"]
    assert config["loggers"]["uvicorn"]["propagate"] is False


def test_configure_logging_invalid_level_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    captured_config: dict[str, Any] = {}

    def _capture_config(config: dict[str, Any]) -> None:
        captured_config["value"] = config

    monkeypatch.setattr(logging.config, "dictConfig", _capture_config)

    configure_logging(_build_settings(level="NOT-A-LEVEL", log_format="text"))

    config = captured_config["value"]

    assert config["formatters"]["standard"]["()"] is StructuredTextFormatter
    assert config["root"]["level"] == "INFO"
    assert config["loggers"]["uvicorn.access"]["propagate"] is False


def test_structured_formatter_substitutes_uvicorn_color_message() -> None:
    formatter = StructuredTextFormatter("%(levelname)s %(message)s")

    record = logging.LogRecord(
        name="uvicorn.error",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="Started server process [%d]",
        args=(1234,),
        exc_info=None,
    )
    record.color_message = "Started \033[1mserver\033[0m process [%d]"  # type: ignore[attr-defined]

    formatted = formatter.format(record)

    assert "Started \033[1mserver\033[0m process [1234]" in formatted
    assert "\033[32mINFO\033[0m" in formatted


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            name="data_feed_exporter.jobs.scheduler",
            level=logging.ERROR,
            pathname=__file__,
            lineno=0,
            msg="Unexpected error",
            args=(),
            exc_info=sys.exc_info(),
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exc_info"]
