"""Command-line interface for the cluster check service.

`clustercheck [flags] serve` runs the HTTP listener (the default).
`clustercheck [flags] check [--master]` evaluates once and exits with
0 (available), 1 (unavailable) or 3 (query failure), for xinetd-style checks.
Flags override the matching environment settings.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from clustercheck.core.checker import ClusterChecker, policy_from_settings
from clustercheck.core.config import ConfigError, settings
from clustercheck.core.db import MySQLStateSource
from clustercheck.core.engine import QueryFailure
from clustercheck.core.log import configure_logging
from clustercheck.core.overrides import build_override_store

logger = logging.getLogger(__name__)

EXIT_AVAILABLE = 0
EXIT_UNAVAILABLE = 1
EXIT_CONFIG = 2
EXIT_QUERY_FAILURE = 3


def _duration_seconds(value: str) -> float:
    """Accept "10", "10s", "500ms" or "1m"."""
    v = value.strip().lower()
    try:
        if v.endswith("ms"):
            return float(v[:-2]) / 1000.0
        if v.endswith("s"):
            return float(v[:-1])
        if v.endswith("m"):
            return float(v[:-1]) * 60.0
        return float(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="clustercheck", description="Galera cluster health check")
    p.add_argument("--username", help="MySQL username")
    p.add_argument("--password", help="MySQL password")
    p.add_argument("--inifile", help="option file read when no username/password is given")
    p.add_argument("--socket", help="unix domain socket")
    p.add_argument("--host", help="MySQL server")
    p.add_argument("--port", type=int, help="MySQL port")
    p.add_argument("--timeout", type=_duration_seconds, help="query timeout, e.g. 10s")
    p.add_argument("--donor", action="store_true", default=None, help="available while node is a donor")
    p.add_argument("--readonly", action="store_true", default=None, help="available while node is read only")
    p.add_argument("--requiremaster", action="store_true", default=None, help="available only while node is master")
    p.add_argument("--bindaddr", help="bind address")
    p.add_argument("--bindport", type=int, help="bind port")
    p.add_argument("--override-backend", choices=["memory", "file"], help="where operator overrides live")
    p.add_argument("--debug", action="store_true", default=None, help="also log successful 200 checks")

    sp = p.add_subparsers(dest="command")

    serve = sp.add_parser("serve", help="Run the HTTP health check listener")
    serve.set_defaults(func=cmd_serve)

    check = sp.add_parser("check", help="Evaluate once and exit")
    check.add_argument("--master", action="store_true", help="require master (wsrep_local_index 0)")
    check.set_defaults(func=cmd_check)

    p.set_defaults(func=cmd_serve)
    return p


_FLAG_SETTINGS = {
    "username": "MYSQL_USER",
    "password": "MYSQL_PASSWORD",
    "inifile": "MYSQL_INIFILE",
    "socket": "MYSQL_SOCKET",
    "host": "MYSQL_HOST",
    "port": "MYSQL_PORT",
    "timeout": "QUERY_TIMEOUT_S",
    "donor": "AVAILABLE_WHEN_DONOR",
    "readonly": "AVAILABLE_WHEN_READONLY",
    "requiremaster": "REQUIRE_MASTER",
    "bindaddr": "BIND_ADDR",
    "bindport": "BIND_PORT",
    "override_backend": "OVERRIDE_BACKEND",
    "debug": "DEBUG",
}


def apply_args(args: argparse.Namespace) -> None:
    """Copy the flags that were given onto settings."""
    for flag, name in _FLAG_SETTINGS.items():
        value = getattr(args, flag, None)
        if value is not None:
            setattr(settings, name, value)


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from clustercheck.main import app

    # Surface a bad option file now rather than on the first poll
    settings.credentials()
    uvicorn.run(app, host=settings.bind_host, port=settings.BIND_PORT, log_config=None)
    return 0


async def _check_once(require_master: bool) -> int:
    source = MySQLStateSource.from_settings(settings)
    checker = ClusterChecker(source, policy_from_settings(settings))
    overrides = build_override_store(settings)
    try:
        verdict = await checker.check(overrides.current(), require_master=require_master or None)
    except QueryFailure as e:
        print(str(e))
        return EXIT_QUERY_FAILURE
    finally:
        await source.dispose()
    print(verdict.reason)
    return EXIT_AVAILABLE if verdict.available else EXIT_UNAVAILABLE


def cmd_check(args: argparse.Namespace) -> int:
    return asyncio.run(_check_once(args.master))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    apply_args(args)
    configure_logging()
    try:
        settings.validate()
        return args.func(args)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG


def run() -> None:
    sys.exit(main())
