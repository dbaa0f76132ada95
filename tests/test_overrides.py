"""
Tests for the override stores (in-memory flags and sentinel files).
"""

import threading

import pytest

from clustercheck.core.config import ConfigError
from clustercheck.core.overrides import (
    FileOverrideStore,
    MemoryOverrideStore,
    Override,
    OverrideError,
    build_override_store,
)


@pytest.fixture
def file_store(tmp_path):
    return FileOverrideStore(str(tmp_path / "run" / "force_fail"), str(tmp_path / "run" / "force_up"))


def test_memory_store_starts_clear():
    assert MemoryOverrideStore().current() is Override.NONE


def test_memory_store_set_and_reset():
    store = MemoryOverrideStore()
    store.set(Override.FORCE_FAIL)
    assert store.current() is Override.FORCE_FAIL
    store.set(Override.FORCE_UP)
    assert store.current() is Override.FORCE_UP
    store.reset()
    assert store.current() is Override.NONE


def test_memory_store_concurrent_access():
    store = MemoryOverrideStore()
    seen = set()

    def toggle():
        for _ in range(500):
            store.set(Override.FORCE_FAIL)
            store.set(Override.FORCE_UP)

    def read():
        for _ in range(500):
            seen.add(store.current())

    threads = [threading.Thread(target=toggle), threading.Thread(target=read)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert seen <= {Override.FORCE_FAIL, Override.FORCE_UP, Override.NONE}
    assert store.current() is Override.FORCE_UP


def test_file_store_creates_and_removes_sentinels(file_store):
    file_store.set(Override.FORCE_FAIL)
    assert file_store.fail_file.exists()
    assert not file_store.up_file.exists()
    assert file_store.current() is Override.FORCE_FAIL

    file_store.set(Override.FORCE_UP)
    assert file_store.up_file.exists()
    assert not file_store.fail_file.exists()

    file_store.reset()
    assert not file_store.up_file.exists()
    assert not file_store.fail_file.exists()
    assert file_store.current() is Override.NONE


def test_file_store_sees_files_created_out_of_band(file_store):
    file_store.fail_file.parent.mkdir(parents=True)
    file_store.fail_file.touch()
    assert file_store.current() is Override.FORCE_FAIL


def test_force_up_file_wins_over_stale_fail_file(file_store):
    file_store.fail_file.parent.mkdir(parents=True)
    file_store.fail_file.touch()
    file_store.up_file.touch()
    assert file_store.current() is Override.FORCE_UP


def test_reset_without_files_is_fine(file_store):
    file_store.reset()
    assert file_store.current() is Override.NONE


def test_build_override_store(restore_settings, tmp_path):
    restore_settings.OVERRIDE_BACKEND = "memory"
    assert isinstance(build_override_store(restore_settings), MemoryOverrideStore)

    restore_settings.OVERRIDE_BACKEND = "file"
    restore_settings.FORCE_FAIL_FILE = str(tmp_path / "fail")
    restore_settings.FORCE_UP_FILE = str(tmp_path / "up")
    store = build_override_store(restore_settings)
    assert isinstance(store, FileOverrideStore)
    assert store.up_file == tmp_path / "up"

    restore_settings.OVERRIDE_BACKEND = "redis"
    with pytest.raises(ConfigError):
        build_override_store(restore_settings)


def test_file_store_reports_unwritable_path(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    store = FileOverrideStore(str(blocker / "force_fail"), str(blocker / "force_up"))
    assert store.current() is Override.NONE
    with pytest.raises(OverrideError) as exc_info:
        store.set(Override.FORCE_FAIL)
    assert str(blocker) in str(exc_info.value)
