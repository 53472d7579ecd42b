"""Shared habitflow configuration utilities.

Centralises reading of ~/.habitflow/configuration.json so that the engine,
the CLI and the tests share one implementation.

Example file:
    {
        "engine": {"batch_delete_mode": "atomic"},
        "logging": {"level": "DEBUG", "format": "human"}
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

HABITFLOW_CONFIG_FILE = Path.home() / ".habitflow" / "configuration.json"
CONFIG_PATH_ENV_VAR = "HABITFLOW_CONFIG"


def get_config_path() -> Path:
    """Config file location; HABITFLOW_CONFIG overrides the default."""
    override = os.environ.get(CONFIG_PATH_ENV_VAR)
    return Path(override) if override else HABITFLOW_CONFIG_FILE


def get_habitflow_config() -> dict[str, Any]:
    """Load habitflow configuration, or {} when missing or unreadable."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8-sig") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


class BatchDeleteMode(StrEnum):
    """How a multi-step delete treats steps that may not be removed."""

    SEQUENTIAL = "sequential"  # Skip refused steps, delete the rest
    ATOMIC = "atomic"  # Refuse the whole batch


def get_batch_delete_mode() -> BatchDeleteMode:
    """Return the configured batch deletion mode, defaulting to sequential."""
    raw = get_habitflow_config().get("engine", {}).get("batch_delete_mode")
    try:
        return BatchDeleteMode(raw) if raw else BatchDeleteMode.SEQUENTIAL
    except ValueError:
        logger.warning("Unknown batch_delete_mode %r, using sequential", raw)
        return BatchDeleteMode.SEQUENTIAL


def get_log_level() -> str:
    return get_habitflow_config().get("logging", {}).get("level", "INFO")


def get_log_format() -> str:
    return get_habitflow_config().get("logging", {}).get("format", "auto")


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Engine configuration loaded from ~/.habitflow/configuration.json."""

    batch_delete_mode: BatchDeleteMode = field(default_factory=get_batch_delete_mode)
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
