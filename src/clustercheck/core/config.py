"""
Application configuration management.
Loads settings from environment variables (via .env if present).
"""

import os
from pathlib import Path
from typing import Dict, Tuple
from dotenv import load_dotenv

# Load .env once at import time (real OS env still wins if set)
load_dotenv(override=False)


class ConfigError(ValueError):
    """Raised when a setting cannot be used to start the service."""


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


# Unparsable numbers are kept as the raw string; validate() reports them, so a
# bad environment never breaks at import time.
def _int_env(name: str, default: str):
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        return raw


def _float_env(name: str, default: str):
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        return raw


def _nearest_existing(path: Path) -> Path:
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


OVERRIDE_BACKENDS = ("memory", "file")


class Settings:
    # Application environment
    APP_ENV: str = os.getenv("APP_ENV", "development")

    # Database connection (local Galera node)
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = _int_env("MYSQL_PORT", "3306")
    MYSQL_SOCKET: str = os.getenv("MYSQL_SOCKET", "")
    MYSQL_USER: str = os.getenv("MYSQL_USER", "")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    # Only read when both user and password are empty
    MYSQL_INIFILE: str = os.getenv("MYSQL_INIFILE", "/home/clustercheck/.my.cnf")
    QUERY_TIMEOUT_S: float = _float_env("QUERY_TIMEOUT_S", "10")
    POOL_SIZE: int = _int_env("POOL_SIZE", "10")

    # Availability policy
    AVAILABLE_WHEN_DONOR: bool = _bool_env("AVAILABLE_WHEN_DONOR")
    AVAILABLE_WHEN_READONLY: bool = _bool_env("AVAILABLE_WHEN_READONLY")
    REQUIRE_MASTER: bool = _bool_env("REQUIRE_MASTER")

    # Operator overrides
    OVERRIDE_BACKEND: str = os.getenv("OVERRIDE_BACKEND", "memory").lower()
    FORCE_FAIL_FILE: str = os.getenv("FORCE_FAIL_FILE", "/var/run/clustercheck/force_fail")
    FORCE_UP_FILE: str = os.getenv("FORCE_UP_FILE", "/var/run/clustercheck/force_up")

    # HTTP listener
    BIND_ADDR: str = os.getenv("BIND_ADDR", "")
    BIND_PORT: int = _int_env("BIND_PORT", "8000")

    # Admin endpoint protection
    API_KEY: str = os.getenv("API_KEY", "")
    AUTH_ENABLED: bool = _bool_env("AUTH_ENABLED")
    ADMIN_RATE_LIMIT: str = os.getenv("ADMIN_RATE_LIMIT", "30/minute")

    # Logging; DEBUG also logs successful (200) checks
    DEBUG: bool = _bool_env("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Metrics configuration
    METRICS_ENABLED: bool = _bool_env("METRICS_ENABLED")
    METRICS_NAMESPACE: str = os.getenv("METRICS_NAMESPACE", "clustercheck")
    METRICS_BUCKETS: str = os.getenv("METRICS_BUCKETS", "0.001,0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,5")

    # ---- Convenience helpers ----
    @property
    def bind_host(self) -> str:
        """uvicorn needs an explicit address; empty means all interfaces."""
        return self.BIND_ADDR or "0.0.0.0"

    def validate(self) -> None:
        """Fail fast on settings that would only break at request time."""
        for name in ("MYSQL_PORT", "BIND_PORT", "POOL_SIZE"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if isinstance(self.QUERY_TIMEOUT_S, bool) or not isinstance(self.QUERY_TIMEOUT_S, (int, float)):
            raise ConfigError(f"QUERY_TIMEOUT_S must be a number, got {self.QUERY_TIMEOUT_S!r}")
        if self.OVERRIDE_BACKEND not in OVERRIDE_BACKENDS:
            raise ConfigError(
                f"OVERRIDE_BACKEND must be one of {OVERRIDE_BACKENDS}, got {self.OVERRIDE_BACKEND!r}"
            )
        if self.QUERY_TIMEOUT_S <= 0:
            raise ConfigError("QUERY_TIMEOUT_S must be positive")
        if not 0 < self.BIND_PORT < 65536:
            raise ConfigError(f"BIND_PORT out of range: {self.BIND_PORT}")
        if not 0 < self.MYSQL_PORT < 65536:
            raise ConfigError(f"MYSQL_PORT out of range: {self.MYSQL_PORT}")
        if self.POOL_SIZE < 1:
            raise ConfigError("POOL_SIZE must be at least 1")
        if self.AUTH_ENABLED and not self.API_KEY:
            raise ConfigError("AUTH_ENABLED requires API_KEY")
        if self.OVERRIDE_BACKEND == "file":
            for name in ("FORCE_FAIL_FILE", "FORCE_UP_FILE"):
                target = Path(getattr(self, name))
                existing = _nearest_existing(target.parent)
                if not existing.is_dir() or not os.access(existing, os.W_OK | os.X_OK):
                    raise ConfigError(f"{name} is not writable: {target}")

    def credentials(self) -> Tuple[str, str]:
        """Return (user, password), falling back to the option file."""
        if self.MYSQL_USER or self.MYSQL_PASSWORD:
            return self.MYSQL_USER, self.MYSQL_PASSWORD
        options = read_option_file(self.MYSQL_INIFILE)
        return options.get("user", ""), options.get("password", "")


def read_option_file(path: str) -> Dict[str, str]:
    """
    Read user/password from a MySQL option file such as ~/.my.cnf.

    Sections are ignored and the first occurrence of a key wins, so a
    [client] block and a [mysql] block repeating the same user do not
    conflict. Values are trimmed and may be quoted.
    """
    try:
        content = Path(path).read_text()
    except OSError as e:
        raise ConfigError(f"error reading option file {path}: {e}")

    options: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line[0] in "#;[" or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip().lower()
        if key not in ("user", "password") or key in options:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        options[key] = value
    return options


settings = Settings()
