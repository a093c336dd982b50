"""
Connection session state.

A Session is created for every connection attempt and owns the only copy of
the connection state. All transitions go through `Session.transition`, which
enforces the transition table below. Emissions are queued under the session lock, so
listeners observe transitions in the order they occurred, and delivered once
the outermost `transaction()` releases it.

    CONNECTING -> CONNECTED | FAILED | DISCONNECTED
    CONNECTED  -> FAILED | DISCONNECTED
"""
import time
import logging
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

from ovpn_manager.local.events import ConnectionEvents
from ovpn_manager.local.supervisor import persistence

if TYPE_CHECKING:
    from ovpn_manager.local.supervisor.supervisor import ProcessHandle

log = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    FAILED = "FAILED"


class Status:
    """Status strings delivered on the status channel."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED_TO_CONNECT = "failed to connect"
    CHECKING_LOGS = "checking logs"
    PROCESS_KILLED = "process killed"


_ALLOWED_TRANSITIONS = {
    ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.FAILED, ConnectionState.DISCONNECTED},
    ConnectionState.CONNECTED: {ConnectionState.FAILED, ConnectionState.DISCONNECTED},
    ConnectionState.FAILED: set(),
    ConnectionState.DISCONNECTED: set(),
}


class Session:
    """State of one connection attempt: process handle, log path and status."""

    def __init__(
        self,
        log_path: Path,
        handle: "ProcessHandle",
        events: Optional[ConnectionEvents] = None,
        auth_path: Optional[Path] = None,
        config_path: Optional[Path] = None,
        remove_auth_file: bool = True,
    ) -> None:
        self.log_path = Path(log_path)
        self.handle = handle
        self.events = events or ConnectionEvents()
        self.auth_path = auth_path
        self.config_path = config_path
        self.remove_auth_file = remove_auth_file

        self.state = ConnectionState.CONNECTING
        self.ever_connected = False
        self.started_at = time.time()
        self.lock = threading.RLock()
        self._depth = 0

    @property
    def is_active(self) -> bool:
        with self.lock:
            return self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)

    @property
    def is_connected(self) -> bool:
        with self.lock:
            return self.state is ConnectionState.CONNECTED

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Holds the session lock for a check-then-transition sequence.
        Events queued inside are delivered after the outermost transaction releases the lock.
        """
        with self.lock:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            outermost = self._depth == 0
        if outermost:
            self.events.dispatch()

    def transition(self, new_state: ConnectionState) -> bool:
        """
        Moves the session to `new_state` if the transition table allows it.

        :param new_state: Target state.
        :return: True if the state changed, False if the transition was rejected.
        """
        with self.lock:
            if new_state not in _ALLOWED_TRANSITIONS[self.state]:
                log.debug(f"Rejected session transition {self.state.name} -> {new_state.name}")
                return False
            log.debug(f"Session transition {self.state.name} -> {new_state.name}")
            self.state = new_state
            if new_state is ConnectionState.CONNECTED:
                self.ever_connected = True
            if new_state in (ConnectionState.FAILED, ConnectionState.DISCONNECTED):
                self._release_artifacts()
            return True

    def announce(self, status: str) -> None:
        """Emits a status that does not change the connection state."""
        with self.transaction():
            self.events.queue_status(status)

    def mark_connected(self) -> bool:
        with self.transaction():
            if not self.transition(ConnectionState.CONNECTED):
                return False
            self.events.queue_connection_changed(True)
            self.events.queue_status(Status.CONNECTED)
            return True

    def mark_process_lost(self) -> bool:
        """
        Records that the VPN client process disappeared.
        The status is 'process killed' once the tunnel has been up, otherwise 'failed to connect'.
        """
        with self.transaction():
            status = Status.PROCESS_KILLED if self.ever_connected else Status.FAILED_TO_CONNECT
            return self._end(ConnectionState.FAILED, status)

    def mark_disconnected(self) -> bool:
        with self.transaction():
            return self._end(ConnectionState.DISCONNECTED, Status.DISCONNECTED)

    def _end(self, final_state: ConnectionState, status: str) -> bool:
        # Both terminal paths report the status first, then the connection drop.
        was_connected = self.state is ConnectionState.CONNECTED
        if not self.transition(final_state):
            return False
        self.events.queue_status(status)
        if was_connected:
            self.events.queue_connection_changed(False)
        return True

    def _release_artifacts(self) -> None:
        if self.remove_auth_file and self.auth_path is not None:
            persistence.remove_auth_file(self.auth_path)
