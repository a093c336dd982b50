import time
import psutil
import logging
import subprocess
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ovpn_manager.local import app_globals
from ovpn_manager.local.errors import LaunchError
from ovpn_manager.local.supervisor import process_utils, shutdown

log = logging.getLogger(__name__)


@dataclass
class ProcessHandle:
    """
    Identifies exactly one launched process.

    The psutil.Process object is captured right after spawning; it carries the
    creation time, so liveness checks never match an unrelated process that
    happens to reuse the PID or share the executable name.
    """
    pid: int
    name: str
    process: Optional[psutil.Process]
    popen: Optional[subprocess.Popen] = None
    started_at: float = field(default_factory=time.time)

    def is_running(self) -> bool:
        # Reap an exited child first so it does not linger as a zombie.
        if self.popen is not None and self.popen.poll() is not None:
            return False
        if self.process is None:
            return False
        return process_utils.is_process_alive(self.process)


class ProcessSupervisor:
    """
    Starts the VPN client as a child process, reports whether it is alive
    and terminates it. Every operation works on the handle returned by
    `launch`; processes are never looked up by name.
    """

    def __init__(self, graceful_timeout: Optional[float] = None) -> None:
        """
        :param graceful_timeout: Seconds to wait after SIGTERM before killing.
            Defaults to GRACEFUL_SHUTDOWN_TIMEOUT, read on every terminate.
        """
        self._graceful_timeout = graceful_timeout

    @property
    def graceful_timeout(self) -> float:
        if self._graceful_timeout is not None:
            return float(self._graceful_timeout)
        return float(app_globals.get("GRACEFUL_SHUTDOWN_TIMEOUT"))

    def launch(self, executable_path: Union[str, Path], args: List[str], cwd: Optional[Path] = None) -> ProcessHandle:
        """
        Launches the executable and starts logging its output.

        :param executable_path: Path or command name of the executable.
        :param args: Command-line arguments.
        :param cwd: Working directory of the child.
        :return: A handle tracking the launched process.
        :raises LaunchError: If the executable is missing or cannot be spawned.
        """
        executable = process_utils.resolve_executable(executable_path)
        if executable is None:
            raise LaunchError(f"Executable not found: '{executable_path}'")

        name = executable.stem
        log.info(f"Starting process: {name}...")
        try:
            p = process_utils.spawn_process(executable, args, cwd)
        except OSError as e:
            log.critical(f"Failed to start process '{name}': {e}", exc_info=True)
            raise LaunchError(f"Failed to start '{executable}': {e}") from e

        try:
            proc = process_utils.get_process_from_pid(p.pid)
        except psutil.NoSuchProcess:
            # Exited before it could be inspected; the watcher reports the failure.
            log.warning(f"{name} (PID {p.pid}) exited immediately after launch.")
            proc = None

        process_utils.log_process_output(p, name)
        log.info(f"{name.capitalize()} started successfully with PID: {p.pid}")
        return ProcessHandle(pid=p.pid, name=name, process=proc, popen=p)

    def is_running(self, handle: ProcessHandle) -> bool:
        return handle.is_running()

    def terminate(self, handle: Optional[ProcessHandle]) -> None:
        """
        Stops the process behind `handle` together with its children.
        Safe to call when the process is already gone.
        """
        if handle is None:
            return

        timeout = self.graceful_timeout
        procs_to_stop = shutdown.identify_processes_to_stop(handle.process) if handle.process else set()
        if not procs_to_stop:
            log.debug(f"Process {handle.name} (PID {handle.pid}) is not running, nothing to terminate.")
        else:
            log.info(f"Terminating {handle.name} (PID {handle.pid}) and {len(procs_to_stop) - 1} child processes...")
            shutdown.graceful_shutdown_sequence(procs_to_stop, timeout)

        if handle.popen is not None:
            try:
                handle.popen.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                log.error(f"Process {handle.name} (PID {handle.pid}) did not exit after kill.")
