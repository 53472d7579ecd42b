"""Shared fixtures: keep tests away from the user's config and logging setup."""

import logging

import pytest

from habitflow.config import CONFIG_PATH_ENV_VAR
from habitflow.observability import clear_flow_context


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config loader at a file that does not exist."""
    path = tmp_path / "configuration.json"
    monkeypatch.setenv(CONFIG_PATH_ENV_VAR, str(path))
    return path


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo configure_logging() and flow context changes made by a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    clear_flow_context()
