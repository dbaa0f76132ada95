"""
Pytest configuration and fixtures.
"""

import os

import pytest
from fastapi.testclient import TestClient

from clustercheck.core.checker import ClusterChecker
from clustercheck.core.config import settings
from clustercheck.core.dependencies import get_checker, get_override_store
from clustercheck.core.engine import Policy, QueryFailure
from clustercheck.core.overrides import MemoryOverrideStore
from clustercheck.main import app
from clustercheck.routers import admin


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-db-tests",
        action="store_true",
        default=False,
        help="Run database integration tests",
    )


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers",
        "db: marks tests as requiring database (deselect with '-m \"not db\"')",
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection based on markers."""
    if not config.getoption("--run-db-tests") and not os.environ.get("RUN_DB_TESTS"):
        skip_db = pytest.mark.skip(reason="Requires --run-db-tests or RUN_DB_TESTS=1")
        for item in items:
            if "db" in item.keywords:
                item.add_marker(skip_db)


class FakeSource:
    """In-memory StateSource; `fail` names a lookup that raises QueryFailure."""

    def __init__(self, state="4", read_only=False, index=0, fail=None):
        self.state = state
        self.read_only_flag = read_only
        self.index = index
        self.fail = fail
        self.calls = []

    def _lookup(self, name, value):
        self.calls.append(name)
        if self.fail == name:
            raise QueryFailure(name, "Lost connection to MySQL server during query")
        return value

    async def membership_state(self):
        return self._lookup("wsrep_local_state", self.state)

    async def read_only(self):
        return self._lookup("read_only", self.read_only_flag)

    async def local_index(self):
        return self._lookup("wsrep_local_index", self.index)


@pytest.fixture
def source():
    """A Synced, writable node at wsrep_local_index 0."""
    return FakeSource()


@pytest.fixture
def overrides():
    return MemoryOverrideStore()


@pytest.fixture
def use_policy(source):
    """Swap the checker's policy: use_policy(Policy(...))."""
    def _use(policy):
        app.dependency_overrides[get_checker] = lambda: ClusterChecker(source, policy)
    return _use


@pytest.fixture
def client(source, overrides, use_policy):
    """Test client wired to the fake source and a fresh override store."""
    use_policy(Policy())
    app.dependency_overrides[get_override_store] = lambda: overrides
    admin.limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def restore_settings():
    """Undo attribute changes tests make on the shared settings object."""
    saved = dict(vars(settings))
    yield settings
    for name in list(vars(settings)):
        if name not in saved:
            delattr(settings, name)
    for name, value in saved.items():
        setattr(settings, name, value)
