import logging
import threading
from enum import Enum
from typing import Optional

from ovpn_manager.local.session import Session

log = logging.getLogger(__name__)


class WatcherState(Enum):
    IDLE = "IDLE"
    POLLING = "POLLING"
    READY = "READY"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PollingTask:
    """
    A cancellable ticker running on a daemon thread.

    The first tick runs immediately, later ticks every `poll_interval`
    seconds. Each run gets its own stop event, so a thread left over from a
    previous run can never observe the flag of the current one.
    Subclasses implement `_tick`, returning True once they are finished.
    """
    thread_name = "PollingTaskThread"

    def __init__(self) -> None:
        self.state = WatcherState.IDLE
        self.session: Optional[Session] = None
        self.poll_interval = 1.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _launch(self, session: Session, poll_interval: float) -> None:
        self.cancel()
        self.session = session
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()
        self.state = WatcherState.POLLING
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            daemon=True,
            name=self.thread_name,
        )
        self._thread.start()

    def cancel(self, timeout: Optional[float] = None) -> None:
        """
        Stops the loop and waits for the thread to exit.
        No callback is delivered by this task once `cancel` returns.
        Called from the task's own thread (a listener reacting to an event), it only sets the flag.
        """
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                # The thread is stuck in a listener; leave the session lock alone.
                log.error(f"{self.thread_name} did not stop within {timeout}s.")
                return
        if self.session is not None:
            with self.session.lock:
                if self.state is WatcherState.POLLING:
                    self.state = WatcherState.CANCELLED
        elif self.state is WatcherState.POLLING:
            self.state = WatcherState.CANCELLED

    def _run(self, stop_event: threading.Event) -> None:
        log.debug(f"{self.thread_name} started (interval {self.poll_interval}s).")
        try:
            self._on_start(stop_event)
            while not stop_event.is_set():
                if self._tick(stop_event):
                    break
                if stop_event.wait(self.poll_interval):
                    break
        except Exception as e:
            log.error(f"Unexpected error in {self.thread_name}: {e}", exc_info=True)
            self.state = WatcherState.FAILED
        log.debug(f"{self.thread_name} stopped in state {self.state.name}.")

    def _on_start(self, stop_event: threading.Event) -> None:
        pass

    def _tick(self, stop_event: threading.Event) -> bool:
        raise NotImplementedError


class LivenessMonitor(PollingTask):
    """
    Watches an established connection for the VPN client disappearing.
    Does nothing until the session is connected; ends with the session.
    """
    thread_name = "LivenessMonitorThread"

    def start(self, session: Session, poll_interval: float = 1.0) -> None:
        self._launch(session, poll_interval)

    def _tick(self, stop_event: threading.Event) -> bool:
        session = self.session
        if not session.is_active:
            with session.lock:
                self.state = WatcherState.CANCELLED
            return True
        if not session.is_connected:
            return False

        running = session.handle.is_running()
        with session.transaction():
            if stop_event.is_set():
                return True
            if not running:
                log.warning(f"VPN client (PID {session.handle.pid}) is no longer running.")
                session.mark_process_lost()
                self.state = WatcherState.FAILED
                return True
        return False
