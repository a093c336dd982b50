# pylint: disable=missing-module-docstring,missing-function-docstring

import sys
import time
from pathlib import Path

import psutil
import pytest

from ovpn_manager.local.errors import LaunchError
from ovpn_manager.local.supervisor import ProcessSupervisor, process_utils

SLEEPER = ["-c", "import time; time.sleep(30)"]
PARENT_WITH_CHILD = [
    "-c",
    "import subprocess, sys, time; "
    "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)']); "
    "time.sleep(30)",
]


@pytest.fixture
def supervisor() -> ProcessSupervisor:
    return ProcessSupervisor(graceful_timeout=3)


def test_launch_tracks_running_process(supervisor: ProcessSupervisor) -> None:
    handle = supervisor.launch(sys.executable, SLEEPER)
    try:
        assert handle.pid > 0
        assert supervisor.is_running(handle)
    finally:
        supervisor.terminate(handle)

    assert not supervisor.is_running(handle)


def test_terminate_is_idempotent(supervisor: ProcessSupervisor) -> None:
    handle = supervisor.launch(sys.executable, SLEEPER)

    supervisor.terminate(handle)
    supervisor.terminate(handle)
    supervisor.terminate(None)

    assert not handle.is_running()


def test_exited_process_is_not_running(supervisor: ProcessSupervisor) -> None:
    handle = supervisor.launch(sys.executable, ["-c", "pass"])
    handle.popen.wait(timeout=10)

    assert not supervisor.is_running(handle)
    supervisor.terminate(handle)


def test_missing_executable_raises_launch_error(supervisor: ProcessSupervisor, tmp_path: Path) -> None:
    with pytest.raises(LaunchError):
        supervisor.launch(tmp_path / "bin" / "openvpn", ["--version"])


def test_unknown_command_name_raises_launch_error(supervisor: ProcessSupervisor) -> None:
    with pytest.raises(LaunchError):
        supervisor.launch("definitely-not-an-openvpn-binary", [])


@pytest.mark.skipif(sys.platform == "win32", reason="process tree timing differs on Windows")
def test_terminate_stops_child_processes(supervisor: ProcessSupervisor) -> None:
    handle = supervisor.launch(sys.executable, PARENT_WITH_CHILD)
    try:
        deadline = time.monotonic() + 10
        children = []
        while not children and time.monotonic() < deadline:
            children = handle.process.children(recursive=True)
            time.sleep(0.05)
        assert children, "child process was not spawned"
    finally:
        supervisor.terminate(handle)

    psutil.wait_procs(children, timeout=5)
    assert not any(process_utils.is_process_alive(child) for child in children)


def test_terminate_leaves_unrelated_processes_alone(supervisor: ProcessSupervisor) -> None:
    tracked = supervisor.launch(sys.executable, SLEEPER)
    bystander = supervisor.launch(sys.executable, SLEEPER)
    try:
        supervisor.terminate(tracked)

        assert not tracked.is_running()
        assert bystander.is_running()
    finally:
        supervisor.terminate(bystander)


def test_build_openvpn_args() -> None:
    args = process_utils.build_openvpn_args(Path("client.ovpn"), Path("auth.txt"), Path("log.txt"))

    assert args == ["--config", "client.ovpn", "--auth-user-pass", "auth.txt", "--log", "log.txt"]


def test_read_log_file_tolerates_missing_and_unreadable(tmp_path: Path) -> None:
    log_path = tmp_path / "log.txt"
    assert process_utils.read_log_file(log_path) == ""
    assert process_utils.read_log_file(tmp_path) == ""

    log_path.write_text("line\n")
    assert process_utils.read_log_file(log_path) == "line\n"
