"""Pytest configuration and fixtures for promptsync tests.

Settings are read from the environment, so the admin API variables are
pinned before any test builds a client.
"""

import os

import pytest

from promptsync.client import InMemoryArtifactClient
from promptsync.config import get_settings
from promptsync.services import ArtifactSyncService


def pytest_configure(config):
    """Register markers and pin the test environment."""
    config.addinivalue_line("markers", "security: Security-related tests (required gate)")
    config.addinivalue_line("markers", "reconcile: Version comparison and reconciliation tests")
    config.addinivalue_line("markers", "integration: Tests requiring a live admin API")

    os.environ.setdefault("PORTKEY_BASE_URL", "https://admin.test/v1")
    os.environ.setdefault("PORTKEY_API_KEY", "test-admin-key")


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def memory_client():
    return InMemoryArtifactClient()


@pytest.fixture
def service(memory_client):
    return ArtifactSyncService(memory_client)
