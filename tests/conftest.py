# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring

import threading
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from ovpn_manager.local import app_globals
from ovpn_manager.local.errors import LaunchError

MARKER = "Initialization Sequence Completed"


class FakeHandle:
    """Stands in for ProcessHandle; liveness is controlled by the test."""

    def __init__(self, pid: int = 4242, running: bool = True,
                 on_check: Optional[Callable[[int], None]] = None) -> None:
        self.pid = pid
        self.name = "openvpn"
        self.running = running
        self.checks = 0
        self._on_check = on_check

    def is_running(self) -> bool:
        self.checks += 1
        if self._on_check is not None:
            self._on_check(self.checks)
        return self.running


class FakeSupervisor:
    def __init__(self) -> None:
        self.launched: List[tuple] = []
        self.terminated: List[FakeHandle] = []
        self.fail_launch = False

    def launch(self, executable_path, args) -> FakeHandle:
        if self.fail_launch:
            raise LaunchError(f"Executable not found: '{executable_path}'")
        handle = FakeHandle(pid=1000 + len(self.launched))
        self.launched.append((executable_path, list(args), handle))
        return handle

    def is_running(self, handle: FakeHandle) -> bool:
        return handle.is_running()

    def terminate(self, handle: FakeHandle) -> None:
        handle.running = False
        self.terminated.append(handle)


class EventRecorder:
    """Collects both callback channels and lets tests wait for a status."""

    def __init__(self) -> None:
        self.statuses: List[str] = []
        self.connections: List[bool] = []
        self.timeline: List[tuple] = []
        self._cond = threading.Condition()

    def on_status(self, status: str) -> None:
        with self._cond:
            self.statuses.append(status)
            self.timeline.append(("status", status))
            self._cond.notify_all()

    def on_connection(self, connected: bool) -> None:
        with self._cond:
            self.connections.append(connected)
            self.timeline.append(("connection", connected))
            self._cond.notify_all()

    def wait_for_status(self, status: str, timeout: float = 3.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: status in self.statuses, timeout)

    def wait_for_connections(self, count: int, timeout: float = 3.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.connections) >= count, timeout)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def session_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(app_globals, "CLEAR_STALE_LOG", True)
    monkeypatch.setattr(app_globals, "REMOVE_AUTH_FILE_ON_DISCONNECT", True)
    config_path = tmp_path / "client.ovpn"
    config_path.write_text("client\nremote vpn.example.com 1194\n")
    return {
        "config": config_path,
        "log": tmp_path / "logs" / "openvpn.log",
        "auth": tmp_path / "runtime" / "auth.txt",
    }
