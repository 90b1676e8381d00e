"""
Shared pytest fixtures and configuration for elasticcache tests.

This module provides:
- A controllable clock so lifetimes can be tested without sleeping
- An in-memory document store and a backend built on it
- Settings isolation (no ``.env`` pickup, no cached settings between tests)
- structlog events captured in memory (``log_output``), never printed
"""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog
from structlog.testing import LogCapture

# Ensure elasticcache package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from elasticcache.core.cache import ElasticsearchBackend
from elasticcache.core.settings import clear_settings_cache
from elasticcache.core.store import InMemoryDocumentStore


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop ELASTICCACHE_* variables and the settings cache around each test."""
    for key in list(os.environ):
        if key.startswith("ELASTICCACHE_") and key != "ELASTICCACHE_TEST_URL":
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def log_output() -> Generator[LogCapture, None, None]:
    """Collect structlog events in memory instead of printing them."""
    capture = LogCapture()
    structlog.configure(processors=[capture], cache_logger_on_first_use=False)
    yield capture
    structlog.reset_defaults()


# =============================================================================
# Clock / store / backend
# =============================================================================


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def backend(store: InMemoryDocumentStore, clock: FakeClock) -> ElasticsearchBackend:
    """Backend on the in-memory store, index ``functest``."""
    return ElasticsearchBackend(store, index_name="functest", clock=clock)
