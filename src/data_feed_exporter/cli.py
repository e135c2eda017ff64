"""Command-line helpers for data feed exporter tooling."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

from .config import ExporterConfig, load_exporter_config, resolve_config_path
from .exceptions import ConfigError
from .rpc import MASKED_VALUE
from .runtime_settings import RuntimeSettings, get_runtime_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate data-feed-exporter configuration files.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to config.toml (defaults to DATA_FEED_EXPORTER_CONFIG_PATH or ./config.toml).",
    )
    parser.add_argument(
        "--print-resolved",
        action="store_true",
        help="Output the resolved runtime settings (with secrets masked by default).",
    )
    parser.add_argument(
        "--show-secrets",
        action="store_true",
        help="Include sensitive values such as the RPC URL when printing the resolved configuration.",
    )
    return parser


def validate_config(config_path: str | None = None) -> ExporterConfig:
    """Load and validate configuration, raising ConfigError on problems."""

    path = Path(config_path).expanduser().resolve() if config_path else resolve_config_path()
    return load_exporter_config(path)


def _serialize(value: Any) -> Any:
    if is_dataclass(value):
        return {key: _serialize(val) for key, val in asdict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(val) for key, val in value.items()}
    return value


def _render_runtime_settings(runtime: RuntimeSettings, *, show_secrets: bool) -> str:
    exporter = _serialize(runtime.exporter) if runtime.exporter is not None else None

    if exporter is not None and not show_secrets:
        exporter["rpc_url"] = MASKED_VALUE

    payload = {
        "config_path": str(runtime.config_path),
        "settings": _serialize(runtime.app),
        "exporter": exporter,
    }

    return json.dumps(payload, indent=2, sort_keys=True)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the ``data-feed-exporter-validate`` script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config_path).expanduser().resolve() if args.config_path else None

    try:
        if args.print_resolved:
            runtime = get_runtime_settings(config_path=config_path)
            print(_render_runtime_settings(runtime, show_secrets=args.show_secrets))
            return 0

        validate_config(str(config_path) if config_path else None)
    except FileNotFoundError as exc:
        parser.error(f"Config file not found: {exc}")
    except ConfigError as exc:
        parser.error(str(exc))

    print("Configuration OK")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
