# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path
from typing import List

import pytest

import ovpn_manager.local.console.handler as handler_mod
import ovpn_manager.local.console.process as process_mod
from conftest import EventRecorder, FakeSupervisor
from ovpn_manager.local.controller import Credentials, VPNController
from ovpn_manager.local.errors import LaunchError
from ovpn_manager.local.supervisor import ProcessSupervisor


class RecordingController:
    def __init__(self, fail: bool = False) -> None:
        self.connects: List[tuple] = []
        self.shutdowns = 0
        self._fail = fail

    def connect(self, credentials: Credentials, config_path: str) -> None:
        if self._fail:
            raise LaunchError("Executable not found: '/missing/openvpn'")
        self.connects.append((credentials, config_path))

    def shutdown(self) -> None:
        self.shutdowns += 1


def test_exit_shuts_down_controller(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = RecordingController()
    monkeypatch.setattr(process_mod, "controller", fake)

    assert process_mod.execute_command("exit", []) is True
    assert fake.shutdowns == 1


def test_unknown_command_keeps_console_open() -> None:
    assert process_mod.execute_command("teleport", []) is False


def test_connect_prompts_for_password(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = RecordingController()
    monkeypatch.setattr(handler_mod, "controller", fake)
    monkeypatch.setattr(handler_mod.getpass, "getpass", lambda prompt: "s3cret")

    assert process_mod.execute_command("connect", ["client.ovpn", "alice"]) is False

    assert fake.connects == [(Credentials("alice", "s3cret"), "client.ovpn")]


def test_connect_reports_launch_error(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(handler_mod, "controller", RecordingController(fail=True))
    monkeypatch.setattr(handler_mod.getpass, "getpass", lambda prompt: "s3cret")

    process_mod.execute_command("connect", ["client.ovpn", "alice"])

    assert "Executable not found" in capsys.readouterr().out


def test_disconnect_without_session_prints_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture, recorder: EventRecorder
) -> None:
    controller = VPNController(supervisor=FakeSupervisor())
    controller.subscribe(recorder.on_connection, recorder.on_status)
    monkeypatch.setattr(handler_mod, "controller", controller)

    process_mod.execute_command("disconnect", [])

    assert "You are not connected to a server." in capsys.readouterr().out
    assert recorder.statuses == []


def test_config_set_updates_setting(monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
                                    capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(handler_mod.app_globals, "OVERRIDES_JSON_PATH", tmp_path / "overrides.json")
    monkeypatch.setattr(handler_mod.app_globals, "LOG_HISTORY_COUNT", 50)

    process_mod.execute_command("config", ["set", "log_history_count", "20"])

    assert handler_mod.app_globals.LOG_HISTORY_COUNT == 20
    assert "updated" in capsys.readouterr().out
    assert (tmp_path / "overrides.json").exists()


def test_config_set_shutdown_timeout_reaches_supervisor(monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
                                                         capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(handler_mod.app_globals, "OVERRIDES_JSON_PATH", tmp_path / "overrides.json")
    monkeypatch.setattr(handler_mod.app_globals, "GRACEFUL_SHUTDOWN_TIMEOUT", 5.0)
    supervisor = ProcessSupervisor()

    process_mod.execute_command("config", ["set", "graceful_shutdown_timeout", "2.5"])

    assert "updated" in capsys.readouterr().out
    assert supervisor.graceful_timeout == 2.5
    assert ProcessSupervisor(graceful_timeout=1).graceful_timeout == 1.0
