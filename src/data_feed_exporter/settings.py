"""Application settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping

TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})
FALSY_VALUES = frozenset({"0", "false", "no", "off"})


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    """Read an integer variable; unset or unparsable values yield ``default``."""
    try:
        return int(env[key])
    except (KeyError, ValueError):
        return default


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env[key])
    except (KeyError, ValueError):
        return default


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    """Read a boolean variable.

    Accepts 1/true/yes/on and 0/false/no/off in any case. Anything else,
    including an unset variable, yields ``default``.
    """
    normalized = env.get(key, "").strip().lower()

    if normalized in TRUTHY_VALUES:
        return True

    if normalized in FALSY_VALUES:
        return False

    return default


@dataclass(slots=True)
class LoggingSettings:
    level: str
    format: str
    color_enabled: bool

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> LoggingSettings:
        return cls(
            level=env.get("LOG_LEVEL", "INFO").upper(),
            format=env.get("LOG_FORMAT", "text").lower(),
            color_enabled=_env_bool(env, "LOG_COLOR_ENABLED", True),
        )


@dataclass(slots=True)
class PollerSettings:
    """Defaults for the polling jobs.

    ``default_interval`` applies when the config file has no
    ``poll_interval``; the RPC timeout bounds every HTTP request.
    """

    default_interval: str
    rpc_request_timeout_seconds: float
    shutdown_timeout_seconds: float

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> PollerSettings:
        return cls(
            default_interval=env.get("POLL_DEFAULT_INTERVAL", "15s"),
            rpc_request_timeout_seconds=_env_float(env, "RPC_REQUEST_TIMEOUT_SECONDS", 10.0),
            shutdown_timeout_seconds=_env_float(env, "SHUTDOWN_TIMEOUT_SECONDS", 5.0),
        )


@dataclass(slots=True)
class HealthSettings:
    readiness_stale_threshold_seconds: int

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> HealthSettings:
        return cls(
            readiness_stale_threshold_seconds=_env_int(env, "READINESS_STALE_THRESHOLD_SECONDS", 300),
        )


@dataclass(slots=True)
class ServerSettings:
    metrics_port: int

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> ServerSettings:
        return cls(metrics_port=_env_int(env, "METRICS_PORT", 9100))


@dataclass(slots=True)
class ConfigSettings:
    config_path_env: str | None
    default_config_filename: str = "config.toml"

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> ConfigSettings:
        return cls(config_path_env=env.get("DATA_FEED_EXPORTER_CONFIG_PATH") or None)

    def resolve_config_path(self) -> Path:
        """Return the config file path.

        ``DATA_FEED_EXPORTER_CONFIG_PATH`` may name the file or the directory
        holding it; without it the file is looked up in the working directory.
        """
        if not self.config_path_env:
            return Path.cwd().joinpath(self.default_config_filename).resolve()

        configured_path = Path(self.config_path_env).expanduser().resolve()

        if configured_path.is_dir():
            return configured_path.joinpath(self.default_config_filename)

        return configured_path


@dataclass(slots=True)
class AppSettings:
    logging: LoggingSettings
    poller: PollerSettings
    health: HealthSettings
    server: ServerSettings
    config: ConfigSettings


def load_settings(env: Mapping[str, str]) -> AppSettings:
    """Build every settings section from an environment mapping."""

    return AppSettings(
        logging=LoggingSettings.from_env(env),
        poller=PollerSettings.from_env(env),
        health=HealthSettings.from_env(env),
        server=ServerSettings.from_env(env),
        config=ConfigSettings.from_env(env),
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings(os.environ)


__all__ = ["AppSettings", "get_settings", "load_settings"]
