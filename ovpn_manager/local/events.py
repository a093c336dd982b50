"""
Callback channels for connection transitions.

Two channels are exposed to callers:
- connection changed (bool)
- status changed (str, one of the `Status` values)

Transitions are queued while the session lock is held and delivered by
`dispatch()` after it is released, so a listener may call back into the
controller. Only one thread delivers at a time; the queue keeps the order
in which transitions happened.
"""
import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

log = logging.getLogger(__name__)

ConnectionChangedListener = Callable[[bool], None]
StatusChangedListener = Callable[[str], None]

_CONNECTION = "connection"
_STATUS = "status"


class ConnectionEvents:
    """Registry of listeners for the two callback channels."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connection_listeners: List[ConnectionChangedListener] = []
        self._status_listeners: List[StatusChangedListener] = []
        self._pending: Deque[Tuple[str, object]] = deque()
        self._dispatching = False

    def subscribe(
        self,
        on_connection_changed: Optional[ConnectionChangedListener] = None,
        on_status_changed: Optional[StatusChangedListener] = None,
    ) -> None:
        """
        Registers listeners. Either argument may be omitted.

        :param on_connection_changed: Called with True/False when the tunnel goes up or down.
        :param on_status_changed: Called with a status string on every transition.
        """
        with self._lock:
            if on_connection_changed is not None:
                self._connection_listeners.append(on_connection_changed)
            if on_status_changed is not None:
                self._status_listeners.append(on_status_changed)

    def queue_connection_changed(self, connected: bool) -> None:
        log.debug(f"Connection changed: {connected}")
        with self._lock:
            self._pending.append((_CONNECTION, connected))

    def queue_status(self, status: str) -> None:
        log.debug(f"Status: {status}")
        with self._lock:
            self._pending.append((_STATUS, status))

    def dispatch(self) -> None:
        """
        Delivers queued events in order.
        Returns at once if another call is already delivering; that call drains what was queued here.
        """
        with self._lock:
            if self._dispatching:
                return
            self._dispatching = True

        drained = False
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        drained = True
                        return
                    channel, value = self._pending.popleft()
                    if channel == _CONNECTION:
                        listeners = list(self._connection_listeners)
                    else:
                        listeners = list(self._status_listeners)
                for listener in listeners:
                    self._deliver(listener, value)
        finally:
            if not drained:
                with self._lock:
                    self._dispatching = False

    @staticmethod
    def _deliver(listener: Callable, value) -> None:
        # A failing listener must not starve the others or kill a polling thread.
        try:
            listener(value)
        except Exception as e:
            log.error(f"Listener {getattr(listener, '__name__', listener)!r} raised: {e}", exc_info=True)
