"""
Database utilities for reading Galera node status.

This module provides the pooled MySQL connection and the three read-only
status lookups the health check needs. Every lookup is bounded by
QUERY_TIMEOUT_S; any error, timeout or unusable value surfaces as a
QueryFailure so callers never mistake "could not ask" for "told no".
"""

import asyncio
import logging
import time
from typing import Optional, Protocol

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from clustercheck.core.config import Settings
from clustercheck.core.engine import QueryFailure
from clustercheck.core.metrics import count_query_failure, observe_query

logger = logging.getLogger(__name__)

WSREP_LOCAL_STATE_SQL = "SHOW GLOBAL STATUS LIKE 'wsrep_local_state'"
WSREP_LOCAL_INDEX_SQL = "SHOW GLOBAL STATUS LIKE 'wsrep_local_index'"
READ_ONLY_SQL = "SHOW GLOBAL VARIABLES LIKE 'read_only'"

_READ_ONLY_VALUES = {"ON": True, "1": True, "TRUE": True, "OFF": False, "0": False, "FALSE": False}


class StateSource(Protocol):
    """Where the checker gets its readings from."""

    async def membership_state(self) -> str: ...

    async def read_only(self) -> bool: ...

    async def local_index(self) -> int: ...


def parse_read_only(raw: str) -> bool:
    try:
        return _READ_ONLY_VALUES[str(raw).strip().upper()]
    except KeyError:
        raise QueryFailure("read_only", f"unexpected value {raw!r}")


def parse_local_state(raw: str) -> str:
    """wsrep_local_state is always numeric; out-of-range codes are left to the engine."""
    value = str(raw).strip()
    try:
        int(value)
    except ValueError:
        raise QueryFailure("wsrep_local_state", f"unexpected value {raw!r}")
    return value


def parse_local_index(raw: str) -> int:
    try:
        index = int(str(raw).strip())
    except ValueError:
        raise QueryFailure("wsrep_local_index", f"unexpected value {raw!r}")
    if index < 0:
        raise QueryFailure("wsrep_local_index", f"negative index {index}")
    return index


def build_url(settings: Settings) -> URL:
    """Build the asyncmy URL; a socket path wins over host/port."""
    user, password = settings.credentials()
    if settings.MYSQL_SOCKET:
        return URL.create(
            "mysql+asyncmy",
            username=user or None,
            password=password or None,
            query={"unix_socket": settings.MYSQL_SOCKET},
        )
    return URL.create(
        "mysql+asyncmy",
        username=user or None,
        password=password or None,
        host=settings.MYSQL_HOST,
        port=settings.MYSQL_PORT,
    )


class MySQLStateSource:
    """Reads wsrep status from the local node over a pooled async engine."""

    def __init__(self, url: URL, timeout_s: float = 10.0, pool_size: int = 10):
        self.url = url
        self.timeout_s = timeout_s
        self.pool_size = pool_size
        self._engine: Optional[AsyncEngine] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MySQLStateSource":
        return cls(build_url(settings), settings.QUERY_TIMEOUT_S, settings.POOL_SIZE)

    @property
    def engine(self) -> AsyncEngine:
        # Created on first use so importing the app never touches the network
        if self._engine is None:
            self._engine = create_async_engine(
                self.url,
                pool_size=self.pool_size,
                pool_pre_ping=True,
                pool_recycle=3600,
                connect_args={"connect_timeout": max(int(self.timeout_s), 1)},
            )
        return self._engine

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def _fetch(self, sql: str):
        async with self.engine.connect() as conn:
            result = await conn.execute(text(sql))
            return result.first()

    async def _show(self, name: str, sql: str) -> str:
        """Run a SHOW ... LIKE statement and return its Value column."""
        start = time.time()
        try:
            row = await asyncio.wait_for(self._fetch(sql), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            count_query_failure(name)
            raise QueryFailure(name, f"timed out after {self.timeout_s}s")
        except (SQLAlchemyError, OSError) as e:
            count_query_failure(name)
            logger.debug("%s query error", name, exc_info=True)
            raise QueryFailure(name, str(e)) from e
        finally:
            observe_query(name, time.time() - start)
        if row is None or len(row) < 2:
            count_query_failure(name)
            raise QueryFailure(name, "no such status variable (is wsrep enabled?)")
        if row[1] is None:
            count_query_failure(name)
            raise QueryFailure(name, "NULL value")
        return str(row[1])

    async def membership_state(self) -> str:
        return parse_local_state(await self._show("wsrep_local_state", WSREP_LOCAL_STATE_SQL))

    async def read_only(self) -> bool:
        return parse_read_only(await self._show("read_only", READ_ONLY_SQL))

    async def local_index(self) -> int:
        return parse_local_index(await self._show("wsrep_local_index", WSREP_LOCAL_INDEX_SQL))
