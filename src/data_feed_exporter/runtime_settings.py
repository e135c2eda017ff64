"""Environment settings and the parsed config file, resolved together."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .config import ExporterConfig, load_exporter_config, resolve_config_path
from .settings import AppSettings, get_settings


@dataclass(slots=True)
class RuntimeSettings:
    """What the exporter runs with.

    ``exporter`` is None when the process started without a config file.
    """

    app: AppSettings

    exporter: ExporterConfig | None

    config_path: Path


def load_runtime_settings(config_path: Path | None = None, settings: AppSettings | None = None) -> RuntimeSettings:
    """Read the config file at ``config_path`` or at the configured location.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid.
    """
    app_settings = settings or get_settings()
    path = config_path or resolve_config_path(app_settings)

    return RuntimeSettings(app=app_settings, exporter=load_exporter_config(path), config_path=path)


@lru_cache(maxsize=1)
def get_runtime_settings(*, config_path: Path | None = None) -> RuntimeSettings:
    return load_runtime_settings(config_path)


def reset_runtime_settings_cache() -> None:
    get_runtime_settings.cache_clear()


__all__ = [
    "RuntimeSettings",
    "get_runtime_settings",
    "load_runtime_settings",
    "reset_runtime_settings_cache",
]
