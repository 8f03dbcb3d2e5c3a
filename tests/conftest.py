"""Pytest fixtures for matrix orchestration tests."""

import pytest

from src.integrations.clients.mocks import MockProductBackend
from src.matrix.orchestrator import SelectionOrchestrator
from src.matrix.store import MatrixStore
from src.utils.config_loader import MatrixConfig, RefreshConfig


@pytest.fixture
def backend():
    """In-memory product backend with the default 21686 catalogue."""
    return MockProductBackend()


@pytest.fixture
def store():
    return MatrixStore()


@pytest.fixture
def config():
    """Default config with follow-up refreshes shortened for tests."""
    return MatrixConfig(refresh=RefreshConfig(delays_seconds=[0.01, 0.02]))


@pytest.fixture
def orchestrator(backend, config):
    return SelectionOrchestrator(backend, config)
