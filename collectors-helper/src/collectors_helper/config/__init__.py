"""Collector configuration (YAML/JSON, schema-validated)."""

from __future__ import annotations

from collectors_helper.config.loader import (
    AdbConfig,
    CollectorConfig,
    ConfigValidationError,
    SimpleperfConfig,
    load_collector_config,
)

__all__ = [
    "AdbConfig",
    "CollectorConfig",
    "ConfigValidationError",
    "SimpleperfConfig",
    "load_collector_config",
]
