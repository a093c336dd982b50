# pylint: disable=missing-module-docstring,missing-function-docstring

import os
import stat
import sys
from pathlib import Path

import pytest

from ovpn_manager.local.supervisor import persistence


def test_write_auth_file_overwrites_previous_credentials(tmp_path: Path) -> None:
    auth_path = tmp_path / "runtime" / "auth.txt"

    persistence.write_auth_file(auth_path, "alice", "first")
    persistence.write_auth_file(auth_path, "bob", "second")

    assert auth_path.read_text(encoding="utf-8") == "bob\nsecond"
    assert not auth_path.with_suffix(".tmp").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
def test_auth_file_is_owner_only(tmp_path: Path) -> None:
    auth_path = persistence.write_auth_file(tmp_path / "auth.txt", "alice", "secret")

    assert stat.S_IMODE(os.stat(auth_path).st_mode) == 0o600


def test_remove_auth_file_ignores_missing(tmp_path: Path) -> None:
    auth_path = tmp_path / "auth.txt"
    auth_path.write_text("alice\nsecret\n")

    persistence.remove_auth_file(auth_path)
    persistence.remove_auth_file(auth_path)

    assert not auth_path.exists()


def test_clear_stale_log_removes_old_file_and_creates_directory(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "openvpn.log"
    persistence.clear_stale_log(log_path)
    assert log_path.parent.is_dir()

    log_path.write_text("Initialization Sequence Completed\n")
    persistence.clear_stale_log(log_path)
    assert not log_path.exists()
