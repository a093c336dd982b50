import time
import logging
import threading
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from ovpn_manager.local import app_globals
from ovpn_manager.local.errors import LaunchError, NotConnectedError
from ovpn_manager.local.events import ConnectionEvents, ConnectionChangedListener, StatusChangedListener
from ovpn_manager.local.session import ConnectionState, Session, Status
from ovpn_manager.local.supervisor import ProcessSupervisor, persistence, process_utils
from ovpn_manager.local.supervisor.background_tasks import LivenessMonitor
from ovpn_manager.local.supervisor.watcher import ReadinessWatcher

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


class VPNController:
    """
    Orchestrates connecting and disconnecting the VPN client.

    Holds at most one Session. `connect` on an active session performs a full
    `disconnect` first. Settings left as None are read from `app_globals` at
    connect time, so runtime config changes apply to the next connection.
    """

    def __init__(
        self,
        supervisor: Optional[ProcessSupervisor] = None,
        events: Optional[ConnectionEvents] = None,
        openvpn_path: Optional[PathLike] = None,
        poll_interval: Optional[float] = None,
        success_marker: Optional[str] = None,
        liveness_enabled: Optional[bool] = None,
        liveness_interval: Optional[float] = None,
        auth_file: Optional[PathLike] = None,
    ) -> None:
        self.supervisor = supervisor or ProcessSupervisor()
        self.events = events or ConnectionEvents()
        self.watcher = ReadinessWatcher(self.events)
        self.liveness_monitor = LivenessMonitor()

        self._openvpn_path = openvpn_path
        self._poll_interval = poll_interval
        self._success_marker = success_marker
        self._liveness_enabled = liveness_enabled
        self._liveness_interval = liveness_interval
        self._auth_file = auth_file

        self._session: Optional[Session] = None
        self._lock = threading.RLock()

    #* --- Settings resolution ---
    def _setting(self, explicit: Any, key: str) -> Any:
        return explicit if explicit is not None else app_globals.get(key)

    @property
    def openvpn_path(self) -> Path:
        return Path(self._setting(self._openvpn_path, "OPENVPN_PATH"))

    @property
    def poll_interval(self) -> float:
        return float(self._setting(self._poll_interval, "POLL_INTERVAL_SECONDS"))

    @property
    def success_marker(self) -> str:
        return self._setting(self._success_marker, "SUCCESS_MARKER")

    #* --- Public API ---
    def subscribe(
        self,
        on_connection_changed: Optional[ConnectionChangedListener] = None,
        on_status_changed: Optional[StatusChangedListener] = None,
    ) -> None:
        self.events.subscribe(on_connection_changed, on_status_changed)

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def state(self) -> ConnectionState:
        session = self._session
        return session.state if session is not None else ConnectionState.DISCONNECTED

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def is_active(self) -> bool:
        session = self._session
        return session is not None and session.is_active

    def connect(
        self,
        credentials: Credentials,
        config_path: PathLike,
        log_path: Optional[PathLike] = None,
        auth_file: Optional[PathLike] = None,
    ) -> Session:
        """
        Starts the VPN client for `config_path` and begins watching it.

        :param credentials: Username and password written to the auth file.
        :param config_path: The .ovpn configuration passed to the client.
        :param log_path: Where the client writes its log; defaults to OPENVPN_LOG_PATH.
        :param auth_file: Where the credentials are written; defaults to AUTH_FILE_PATH.
        :return: The new session, in state CONNECTING.
        :raises LaunchError: If the client could not be started. No session is created.
        """
        with self._lock:
            if self.is_active:
                log.info("A session is already active. Disconnecting it first.")
                self._end_session(self._session)
            else:
                self._stop_tasks()

            config_path = Path(config_path)
            log_path = Path(log_path or app_globals.OPENVPN_LOG_PATH)
            auth_path = Path(auth_file or self._setting(self._auth_file, "AUTH_FILE_PATH"))
            if not config_path.exists():
                log.warning(f"Configuration file '{config_path}' does not exist; the client will likely fail.")

            if app_globals.CLEAR_STALE_LOG:
                persistence.clear_stale_log(log_path)
            persistence.write_auth_file(auth_path, credentials.username, credentials.password)

            args = process_utils.build_openvpn_args(config_path, auth_path, log_path)
            try:
                handle = self.supervisor.launch(self.openvpn_path, args)
            except LaunchError as e:
                log.error(f"Could not start the VPN client: {e}")
                persistence.remove_auth_file(auth_path)
                raise

            session = Session(
                log_path,
                handle,
                events=self.events,
                auth_path=auth_path,
                config_path=config_path,
                remove_auth_file=app_globals.REMOVE_AUTH_FILE_ON_DISCONNECT,
            )
            self._session = session
            log.info(f"Connecting with '{config_path.name}' as '{credentials.username}' (PID {handle.pid}).")
            session.announce(Status.CONNECTING)

            self.watcher.start(log_path, handle, self.poll_interval, self.success_marker, session=session)
            if self._setting(self._liveness_enabled, "LIVENESS_CHECK_ENABLED"):
                interval = float(self._setting(self._liveness_interval, "LIVENESS_POLL_INTERVAL_SECONDS"))
                self.liveness_monitor.start(session, interval)
            return session

    def disconnect(self) -> None:
        """
        Stops watching, terminates the client and ends the session.

        :raises NotConnectedError: If no session is active. Nothing is emitted in that case.
        """
        with self._lock:
            session = self._session
            if session is None or not session.is_active:
                raise NotConnectedError()
            if not self._end_session(session):
                # The client exited while the tasks were stopping; that loss was already reported.
                raise NotConnectedError()

    def shutdown(self) -> None:
        """Disconnects if needed and stops all background tasks."""
        with self._lock:
            session = self._session
            if session is not None and session.is_active:
                self._end_session(session)
            self._stop_tasks()

    def status(self) -> Dict[str, Any]:
        """Returns a snapshot of the current session for display."""
        session = self._session
        if session is None:
            return {"state": ConnectionState.DISCONNECTED.name}
        with session.lock:
            return {
                "state": session.state.name,
                "pid": session.handle.pid,
                "running": session.handle.is_running(),
                "config_path": str(session.config_path) if session.config_path else None,
                "log_path": str(session.log_path),
                "uptime_seconds": time.time() - session.started_at,
                "watcher": self.watcher.state.name,
            }

    #* --- Internal ---
    def _end_session(self, session: Session) -> bool:
        """Terminates the client of `session`; returns False if the session had already ended."""
        log.info(f"Disconnecting (PID {session.handle.pid})...")
        self._stop_tasks()
        self.supervisor.terminate(session.handle)
        ended = session.mark_disconnected()
        self._session = None
        if ended:
            log.info("Disconnected.")
        return ended

    def _stop_tasks(self) -> None:
        timeout = max(self.poll_interval * 2, 5.0)
        self.watcher.cancel(timeout)
        self.liveness_monitor.cancel(timeout)
