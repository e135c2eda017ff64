from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError, ValidationError
from .settings import AppSettings, get_settings

DEFAULT_ENV_PATH = Path.cwd().joinpath(".env").resolve()

load_dotenv(DEFAULT_ENV_PATH)

# Variable labels attached to every data feed balance series.
TARGET_LABEL_NAMES = ("name", "contract", "from", "to")

CHAINLINK_DATA_FEED_SECTION = "chainlink_data_feed"


@dataclass(frozen=True, slots=True)
class AddressTarget:
    """One contract to poll, with the display labels attached to its series."""

    display_name: str

    contract_address: str

    source_address: str

    destination_address: str

    def label_values(self) -> tuple[str, str, str, str]:
        """Return label values in ``TARGET_LABEL_NAMES`` order."""

        return (
            self.display_name,
            self.contract_address,
            self.source_address,
            self.destination_address,
        )


@dataclass(frozen=True, slots=True)
class ExporterConfig:
    rpc_url: str

    namespace: str

    const_labels: dict[str, str] = field(default_factory=dict)

    poll_interval: str | None = None

    chainlink_data_feeds: tuple[AddressTarget, ...] = ()


def load_exporter_config(path: Path | None = None) -> ExporterConfig:
    config_path = path or resolve_config_path()

    data = _read_toml(config_path)

    rpc_url = _require_non_empty_string(data.get("rpc_url"), "rpc_url")

    namespace = _validate_metric_name_fragment(
        _require_non_empty_string(data.get("namespace"), "namespace"),
        "namespace",
    )

    poll_interval = data.get("poll_interval")

    if poll_interval is not None:
        if not isinstance(poll_interval, str):
            raise ValidationError(
                "poll_interval must be a string if provided.",
                config_key="poll_interval",
                expected_type="string",
                value=type(poll_interval).__name__,
            )
        poll_interval = _validate_poll_interval(poll_interval, "poll_interval")

    const_labels = _parse_const_labels(data.get("const_labels", {}))

    targets = _parse_targets(data.get(CHAINLINK_DATA_FEED_SECTION, []), CHAINLINK_DATA_FEED_SECTION)

    return ExporterConfig(
        rpc_url=rpc_url,
        namespace=namespace,
        const_labels=const_labels,
        poll_interval=poll_interval,
        chainlink_data_feeds=targets,
    )


def resolve_config_path(settings: AppSettings | None = None) -> Path:
    resolved_settings = settings or get_settings()

    return resolved_settings.config.resolve_config_path()


def _parse_const_labels(data: Any) -> dict[str, str]:
    """Parse the ``[const_labels]`` table.

    Args:
        data: Raw value of the ``const_labels`` key.

    Returns:
        Mapping of label name to label value.

    Raises:
        ValidationError: If the table, a label name, or a label value is invalid.
    """
    if not isinstance(data, dict):
        raise ValidationError(
            "const_labels must be a table if provided.",
            config_section="const_labels",
            expected_type="table",
            value=type(data).__name__,
        )

    labels: dict[str, str] = {}

    for key, value in data.items():
        location = f"const_labels.{key}"

        if not LABEL_NAME_PATTERN.match(key) or key.startswith("__"):
            raise ValidationError(
                f"{location} is not a valid Prometheus label name.",
                config_section="const_labels",
                config_key=key,
                expected_type="label_name",
                value=key,
            )

        if key in TARGET_LABEL_NAMES:
            raise ValidationError(
                f"{location} collides with a per-target label.",
                config_section="const_labels",
                config_key=key,
                value=key,
            )

        if not isinstance(value, str):
            raise ValidationError(
                f"{location} must be a string.",
                config_section="const_labels",
                config_key=key,
                expected_type="string",
                value=type(value).__name__,
            )

        labels[key] = value

    return labels


def _parse_targets(data: Any, section: str) -> tuple[AddressTarget, ...]:
    if not isinstance(data, list):
        raise ConfigError(
            f"Configuration '{section}' section must be an array.",
            config_section=section,
        )

    targets: list[AddressTarget] = []

    for index, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(
                f"{section}[{index}] must be a table.",
                config_section=f"{section}[{index}]",
                expected_type="table",
                value=type(entry).__name__,
            )

        target = _parse_target(entry, section, index)

        if _coerce_optional_bool(entry.get("enabled"), f"{section}[{index}].enabled", default=True):
            targets.append(target)

    return tuple(targets)


def _parse_target(data: dict[str, Any], section: str, index: int) -> AddressTarget:
    """Parse one target entry.

    Duplicate entries are allowed; they poll twice and share one series.
    """
    location = f"{section}[{index}]"

    name = _require_non_empty_string(data.get("name"), f"{location}.name")

    contract_str = _require_non_empty_string(data.get("contract"), f"{location}.contract")

    contract = _validate_ethereum_address(contract_str, f"{location}.contract")

    source = _require_string(data.get("from", ""), f"{location}.from")

    destination = _require_string(data.get("to", ""), f"{location}.to")

    return AddressTarget(
        display_name=name,
        contract_address=contract,
        source_address=source,
        destination_address=destination,
    )


def _read_toml(path: Path) -> dict[str, Any]:
    """Read and parse a TOML configuration file with environment variable expansion.

    Args:
        path: Path to the TOML file to read.

    Returns:
        Parsed TOML data as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the TOML is invalid.
    """
    with path.open("r", encoding="utf-8") as file:
        raw_toml = file.read()

    expanded_toml = os.path.expandvars(raw_toml)

    try:
        return tomllib.loads(expanded_toml)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in configuration file: {exc}",
            config_file=str(path),
        ) from exc


def _require_string(value: Any, location: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            f"{location} must be a string.",
            config_section=location,
            expected_type="string",
            value=type(value).__name__,
        )

    return value.strip()


def _require_non_empty_string(value: Any, location: str) -> str:
    """Validate that a value is a non-empty string.

    Args:
        value: Value to validate.
        location: Location string for error messages (e.g., "chainlink_data_feed[1].name").

    Returns:
        Stripped string value.

    Raises:
        ValidationError: If the value is not a non-empty string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{location} must be a non-empty string.",
            config_section=location,
            expected_type="string",
            value=value if value is None or isinstance(value, str) else type(value).__name__,
        )

    return value.strip()


# Ethereum address format: 0x followed by 40 hex characters (42 characters total)
ETH_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

LABEL_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _validate_ethereum_address(address: str, location: str) -> str:
    """Validate that a string is a valid Ethereum address format.

    Only the format is checked, not the EIP-55 checksum. The address is
    returned as written so the metric label matches the configuration.
    """
    if not ETH_ADDRESS_PATTERN.match(address):
        raise ValidationError(
            f"{location} must be a valid Ethereum address format (0x followed by 40 hex characters).",
            config_section=location,
            config_key="contract",
            expected_type="ethereum_address",
            value=address,
        )

    return address


def _validate_metric_name_fragment(value: str, location: str) -> str:
    if not LABEL_NAME_PATTERN.match(value):
        raise ValidationError(
            f"{location} must contain only letters, digits and underscores and not start with a digit.",
            config_section=location,
            expected_type="metric_name",
            value=value,
        )

    return value


def _validate_poll_interval(interval: str, location: str) -> str:
    """Validate that a string is a valid poll interval format.

    Valid formats: 'N', 'Ns', 'Nm', 'Nh' where N is a positive integer.
    """
    from .jobs.intervals import parse_duration_to_seconds

    seconds = parse_duration_to_seconds(interval)

    if seconds is None or seconds <= 0:
        raise ValidationError(
            f"{location} must be a valid duration format (e.g., '15s', '1m', '1h'). Format: number optionally followed by unit (s/m/h).",
            config_section=location,
            config_key="poll_interval",
            expected_type="duration_string",
            value=interval,
        )

    return interval


def _coerce_optional_bool(value: Any, location: str, *, default: bool = True) -> bool:
    """Coerce a value to a boolean with optional default.

    Raises:
        ValidationError: If the value cannot be coerced to a boolean.
    """
    if value is None:
        return default

    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        value_lower = value.lower().strip()
        if value_lower in ("true", "1", "yes", "on"):
            return True
        if value_lower in ("false", "0", "no", "off"):
            return False

    raise ValidationError(
        f"{location} must be a boolean (true/false).",
        config_section=location,
        expected_type="boolean",
        value=value,
    )
