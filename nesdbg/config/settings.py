"""Settings loader for the nesdbg console.

Configuration comes from an optional TOML file (top-level keys, or a
``[nesdbg]`` table) with sane defaults for everything it leaves out.
Command-line overrides are applied on top before validation.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from marshmallow import ValidationError

from .model import RuntimeConfig
from .schema import RuntimeConfigSchema

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("nesdbg.toml")
CONFIG_TABLE = "nesdbg"


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    table = document.get(CONFIG_TABLE, document)
    if not isinstance(table, dict):
        raise ValueError(f"[{CONFIG_TABLE}] in {path} must be a table")
    return dict(table)


def _format_errors(messages: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for field_name, problems in sorted(messages.items()):
        detail = "; ".join(str(p) for p in problems) if isinstance(problems, list) else str(problems)
        parts.append(f"{field_name}: {detail}")
    return ", ".join(parts)


def build_runtime_config(raw: Mapping[str, Any]) -> RuntimeConfig:
    """Validate a raw mapping and return the typed configuration."""
    try:
        config = RuntimeConfigSchema().load(dict(raw))
    except ValidationError as e:
        messages = e.messages if isinstance(e.messages, dict) else {"_schema": e.messages}
        raise ValueError(f"Invalid configuration: {_format_errors(messages)}") from e
    return config  # type: ignore[no-any-return]


def load_runtime_config(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RuntimeConfig:
    """Load configuration from TOML (if any), overrides and defaults.

    An explicit ``path`` must exist; the implicit ``nesdbg.toml`` in the
    working directory is only read when present.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        raw.update(_read_config_file(Path(path)))
    elif DEFAULT_CONFIG_FILE.is_file():
        raw.update(_read_config_file(DEFAULT_CONFIG_FILE))
    else:
        logger.debug("No config file found; using defaults")

    if overrides:
        raw.update({key: value for key, value in overrides.items() if value is not None})

    return build_runtime_config(raw)


__all__ = ["RuntimeConfig", "build_runtime_config", "load_runtime_config"]
