"""Pytest configuration and fixtures."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import logging
import os

from collections.abc import Iterator

import pytest

from tabauth.config import AuthConfig, clear_settings
from tabauth.storage import MemoryStorage
from tests.fakes import FakeProvider, make_config


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep TABAUTH_* variables from the developer shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("TABAUTH_"):
            monkeypatch.delenv(name, raising=False)
    clear_settings()


@pytest.fixture(autouse=True)
def _capture_tabauth_logs() -> Iterator[None]:
    """Let caplog see tabauth records regardless of earlier configuration."""
    logger = logging.getLogger("tabauth")
    handlers = list(logger.handlers)
    logger.setLevel(logging.DEBUG)
    yield
    # drop handlers get_logger() attached to a captured stderr
    logger.handlers = handlers


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture()
def config() -> AuthConfig:
    """Default test configuration (memory storage, refresh enabled)."""
    return make_config()


@pytest.fixture()
def storage() -> MemoryStorage:
    """Storage shared by every session created in one test."""
    return MemoryStorage()


@pytest.fixture()
def provider() -> FakeProvider:
    """A fresh fake provider."""
    return FakeProvider()
