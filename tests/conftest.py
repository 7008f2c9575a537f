"""Shared pytest fixtures for compound cache tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest
import structlog

from compound_cache.config import ENV_PREFIX
from compound_cache.logger import reset_global_context

pytest_plugins = [
    "tests.fixtures.compounds",
]


@pytest.fixture(autouse=True)  # type: ignore[misc]
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep configuration overrides from the outer shell out of the tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)  # type: ignore[misc]
def _reset_logging() -> Iterator[None]:
    """Undo logging configuration applied by CLI invocations."""
    yield
    structlog.reset_defaults()
    reset_global_context()
    logging.getLogger().handlers.clear()
