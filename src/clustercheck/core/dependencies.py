"""
FastAPI dependencies.

The override store, the state source and the checker are owned by the
application (app.state) and built on first use from settings. Tests swap
them through app.dependency_overrides.
"""

from fastapi import Request

from clustercheck.core.checker import ClusterChecker, policy_from_settings
from clustercheck.core.config import settings
from clustercheck.core.db import MySQLStateSource
from clustercheck.core.overrides import OverrideStore, build_override_store


def get_override_store(request: Request) -> OverrideStore:
    store = getattr(request.app.state, "overrides", None)
    if store is None:
        store = build_override_store(settings)
        request.app.state.overrides = store
    return store


def get_checker(request: Request) -> ClusterChecker:
    checker = getattr(request.app.state, "checker", None)
    if checker is None:
        source = MySQLStateSource.from_settings(settings)
        checker = ClusterChecker(source, policy_from_settings(settings))
        request.app.state.checker = checker
    return checker
