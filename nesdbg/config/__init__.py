"""Configuration helpers for the nesdbg console."""

from . import logging, settings  # noqa: F401  # pyright: ignore[reportUnusedImport]
from .model import RuntimeConfig
from .settings import build_runtime_config, load_runtime_config

__all__ = ["RuntimeConfig", "build_runtime_config", "load_runtime_config"]
