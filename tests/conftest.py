"""Shared pytest fixtures and configuration for the macvod test suite.

Guidelines
----------
* No internet access in any test.
* HTTP is mocked at the transport boundary.
* Core tests must be pure — no side effects.
* Tests must not depend on OS state: the settings file always lives in
  a per-test temporary directory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from macvod.core.endpoint_store import EndpointStore
from macvod.infra.storage import InMemoryStorage


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``MACVOD_CONFIG`` at a temp file and clear other overrides."""
    path = tmp_path / "settings.json"
    monkeypatch.setenv("MACVOD_CONFIG", str(path))
    for name in ("MACVOD_TIMEOUT", "MACVOD_API_TYPE", "MACVOD_VERIFY_TLS"):
        monkeypatch.delenv(name, raising=False)
    return path


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo ``configure_logging`` so caplog keeps working across tests."""
    logger = logging.getLogger("macvod")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def store(storage: InMemoryStorage) -> EndpointStore:
    return EndpointStore(storage)
