"""
Readiness detection for the VPN client.

The watcher polls the client's log file for the success marker while
checking that the launched process is still alive:

    IDLE -> POLLING -> READY | FAILED | CANCELLED

Each tick first checks the process (gone -> FAILED), then reads the log
(marker found -> READY). A missing or unreadable log counts as empty.
"""
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ovpn_manager.local.events import ConnectionEvents
from ovpn_manager.local.session import Session, Status
from ovpn_manager.local.supervisor import process_utils
from ovpn_manager.local.supervisor.background_tasks import PollingTask, WatcherState

if TYPE_CHECKING:
    from ovpn_manager.local.supervisor.supervisor import ProcessHandle

log = logging.getLogger(__name__)

DEFAULT_SUCCESS_MARKER = "Initialization Sequence Completed"


class ReadinessWatcher(PollingTask):
    """Derives the connection state of one session from its log file and process."""
    thread_name = "ReadinessWatcherThread"

    def __init__(self, events: Optional[ConnectionEvents] = None) -> None:
        super().__init__()
        self.events = events or ConnectionEvents()
        self.success_marker = DEFAULT_SUCCESS_MARKER
        self._log_offset = 0
        self._proc_log = logging.getLogger("proc.openvpn")

    def start(
        self,
        log_path: Path,
        handle: "ProcessHandle",
        poll_interval: float = 1.0,
        success_marker: str = DEFAULT_SUCCESS_MARKER,
        session: Optional[Session] = None,
    ) -> Session:
        """
        Begins polling on a background thread. A watcher that is still
        polling is cancelled first.

        :param log_path: Log file written by the VPN client.
        :param handle: Handle of the launched VPN client.
        :param poll_interval: Seconds between ticks.
        :param success_marker: Substring that signals an established connection.
        :param session: Session to drive; a new one is created when omitted.
        :return: The session being watched.
        """
        if session is None:
            session = Session(log_path, handle, events=self.events)
        self.cancel()
        self.success_marker = success_marker
        self._log_offset = 0
        self._launch(session, poll_interval)
        return session

    @property
    def log_path(self) -> Path:
        return self.session.log_path

    def _on_start(self, stop_event: threading.Event) -> None:
        with self.session.transaction():
            if not stop_event.is_set():
                self.session.announce(Status.CHECKING_LOGS)

    def _tick(self, stop_event: threading.Event) -> bool:
        session = self.session
        running = session.handle.is_running()
        content = process_utils.read_log_file(session.log_path) if running else ""
        self._forward_new_lines(content)

        with session.transaction():
            if stop_event.is_set():
                return True
            if not session.is_active:
                self.state = WatcherState.CANCELLED
                return True
            if not running:
                log.warning(f"VPN client (PID {session.handle.pid}) exited before the connection was established.")
                session.mark_process_lost()
                self.state = WatcherState.FAILED
                return True
            if self.success_marker in content:
                log.info(f"Found '{self.success_marker}' in {session.log_path}.")
                session.mark_connected()
                self.state = WatcherState.READY
                return True
        return False

    def _forward_new_lines(self, content: str) -> None:
        """Logs complete lines appended since the previous tick under 'proc.openvpn'."""
        if len(content) < self._log_offset:
            # Truncated or recreated by the client.
            self._log_offset = 0
        end = content.rfind("\n") + 1
        if end <= self._log_offset:
            return
        for line in content[self._log_offset:end].splitlines():
            line = line.strip()
            if line:
                self._proc_log.info(line)
        self._log_offset = end
