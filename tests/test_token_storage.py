"""
tests/test_token_storage.py -- MemoryTokenStorage and FileTokenStorage.
"""

from __future__ import annotations

import json
import os
import stat
import sys

import pytest

from client.storage import FileTokenStorage, MemoryTokenStorage


@pytest.fixture(params=["memory", "file"])
def storage(request, tmp_path):
    if request.param == "memory":
        return MemoryTokenStorage()
    return FileTokenStorage(tmp_path / "nested" / "tokens.json")


def test_starts_empty(storage):
    assert storage.get_access() is None
    assert storage.get_refresh() is None


def test_set_tokens_and_access(storage):
    storage.set_tokens("access-1", "refresh-1")
    storage.set_access("access-2")
    assert storage.get_access() == "access-2"
    assert storage.get_refresh() == "refresh-1"


def test_clear(storage):
    storage.set_tokens("access-1", "refresh-1")
    storage.clear()
    storage.clear()
    assert storage.get_access() is None
    assert storage.get_refresh() is None


def test_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "tokens.json"
    FileTokenStorage(path).set_tokens("access-1", "refresh-1")
    reopened = FileTokenStorage(path)
    assert reopened.get_access() == "access-1"
    assert json.loads(path.read_text()) == {"accessToken": "access-1", "refreshToken": "refresh-1"}


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_file_storage_is_private(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{}")
    os.chmod(path, 0o644)
    FileTokenStorage(path).set_tokens("access-1", "refresh-1")
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{not json")
    storage = FileTokenStorage(path)
    assert storage.get_access() is None
    storage.set_tokens("access-1", "refresh-1")
    assert storage.get_refresh() == "refresh-1"
