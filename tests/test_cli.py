"""
Tests for the command-line entry point.
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path

import pytest

from clustercheck import cli

from conftest import FakeSource


class FakeMySQLSource(FakeSource):
    instances = []

    @classmethod
    def from_settings(cls, settings):
        return cls.instances[-1]

    async def dispose(self):
        self.disposed = True


@pytest.fixture
def fake_db(monkeypatch):
    FakeMySQLSource.instances = [FakeMySQLSource()]
    monkeypatch.setattr(cli, "MySQLStateSource", FakeMySQLSource)
    return FakeMySQLSource.instances[-1]


@pytest.fixture
def cli_settings(restore_settings):
    restore_settings.OVERRIDE_BACKEND = "memory"
    restore_settings.AUTH_ENABLED = False
    return restore_settings


def test_flags_override_settings(cli_settings):
    args = cli.build_parser().parse_args(
        ["--donor", "--requiremaster", "--host", "db2", "--port", "3307", "--timeout", "500ms", "--bindport", "9200"]
    )
    cli.apply_args(args)
    assert cli_settings.AVAILABLE_WHEN_DONOR is True
    assert cli_settings.REQUIRE_MASTER is True
    assert cli_settings.MYSQL_HOST == "db2"
    assert cli_settings.MYSQL_PORT == 3307
    assert cli_settings.QUERY_TIMEOUT_S == 0.5
    assert cli_settings.BIND_PORT == 9200


def test_unset_flags_keep_settings(cli_settings):
    cli_settings.AVAILABLE_WHEN_READONLY = True
    cli.apply_args(cli.build_parser().parse_args([]))
    assert cli_settings.AVAILABLE_WHEN_READONLY is True


@pytest.mark.parametrize("value, seconds", [("10", 10.0), ("10s", 10.0), ("250ms", 0.25), ("1m", 60.0)])
def test_duration_parsing(value, seconds):
    assert cli._duration_seconds(value) == seconds


def test_bad_duration():
    with pytest.raises(argparse.ArgumentTypeError):
        cli._duration_seconds("soon")


def test_check_available(fake_db, cli_settings, capsys):
    assert cli.main(["check"]) == cli.EXIT_AVAILABLE
    assert "accepting traffic" in capsys.readouterr().out
    assert fake_db.disposed is True


def test_check_master_not_elected(fake_db, cli_settings, capsys):
    fake_db.index = 3
    assert cli.main(["check", "--master"]) == cli.EXIT_UNAVAILABLE
    assert "wsrep_local_index=3" in capsys.readouterr().out


def test_check_query_failure(fake_db, cli_settings, capsys):
    fake_db.fail = "read_only"
    assert cli.main(["check"]) == cli.EXIT_QUERY_FAILURE
    assert "read_only query failed" in capsys.readouterr().out


def test_invalid_config_exits_with_config_code(fake_db, cli_settings):
    cli_settings.QUERY_TIMEOUT_S = 5
    assert cli.main(["--timeout", "0", "check"]) == cli.EXIT_CONFIG


def test_unparsable_setting_exits_with_config_code(fake_db, cli_settings):
    cli_settings.MYSQL_PORT = "abc"
    assert cli.main(["check"]) == cli.EXIT_CONFIG


def test_bad_env_value_exits_with_config_code(tmp_path):
    src = Path(__file__).resolve().parent.parent / "src"
    env = dict(os.environ, MYSQL_PORT="abc", PYTHONPATH=str(src), OVERRIDE_BACKEND="memory", AUTH_ENABLED="false")
    result = subprocess.run(
        [sys.executable, "-c", "from clustercheck.cli import main; raise SystemExit(main(['check']))"],
        env=env,
        cwd=str(tmp_path),
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == cli.EXIT_CONFIG
    assert "MYSQL_PORT must be an integer" in result.stderr
    assert "Traceback" not in result.stderr
