"""
Operator availability overrides.

One capability, two backends: an in-memory pair of flags toggled through the
admin endpoints, or sentinel files probed on every request so that automation
can drop a file instead of calling HTTP.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from clustercheck.core.config import ConfigError

logger = logging.getLogger(__name__)


class OverrideError(Exception):
    """A sentinel file could not be created or removed."""

    def __init__(self, path: Path, error: OSError):
        super().__init__(f"cannot update override file {path}: {error.strerror or error}")
        self.path = path


class Override(Enum):
    NONE = "none"
    FORCE_FAIL = "force-fail"
    FORCE_UP = "force-up"


class OverrideStore(ABC):
    """Operator-settable override, cheap to read on every request."""

    @abstractmethod
    def current(self) -> Override:
        """Return the override in effect; FORCE_UP wins over FORCE_FAIL."""

    @abstractmethod
    def set(self, override: Override) -> None:
        """Make `override` the only active override (NONE clears)."""

    def reset(self) -> None:
        self.set(Override.NONE)


class MemoryOverrideStore(OverrideStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._force_fail = False
        self._force_up = False

    def current(self) -> Override:
        with self._lock:
            if self._force_up:
                return Override.FORCE_UP
            if self._force_fail:
                return Override.FORCE_FAIL
            return Override.NONE

    def set(self, override: Override) -> None:
        with self._lock:
            self._force_up = override is Override.FORCE_UP
            self._force_fail = override is Override.FORCE_FAIL


class FileOverrideStore(OverrideStore):
    """
    Sentinel-file overrides.

    Each current() call checks the files independently; a file created
    between two checks takes effect on the next request.
    """

    def __init__(self, fail_file: str, up_file: str) -> None:
        self.fail_file = Path(fail_file)
        self.up_file = Path(up_file)

    def current(self) -> Override:
        if self.up_file.exists():
            return Override.FORCE_UP
        if self.fail_file.exists():
            return Override.FORCE_FAIL
        return Override.NONE

    def set(self, override: Override) -> None:
        keep = {
            Override.FORCE_UP: self.up_file,
            Override.FORCE_FAIL: self.fail_file,
        }.get(override)
        for path in (self.up_file, self.fail_file):
            try:
                if path == keep:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.touch()
                else:
                    path.unlink(missing_ok=True)
            except OSError as e:
                raise OverrideError(path, e) from e
        logger.debug("override files updated: %s", override.value)


def build_override_store(settings) -> OverrideStore:
    """Pick the backend named by settings.OVERRIDE_BACKEND."""
    if settings.OVERRIDE_BACKEND == "memory":
        return MemoryOverrideStore()
    if settings.OVERRIDE_BACKEND == "file":
        return FileOverrideStore(settings.FORCE_FAIL_FILE, settings.FORCE_UP_FILE)
    raise ConfigError(f"unknown override backend: {settings.OVERRIDE_BACKEND!r}")
