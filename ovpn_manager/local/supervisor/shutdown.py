import psutil
import logging
from typing import List, Set

log = logging.getLogger(__name__)


def identify_processes_to_stop(proc: psutil.Process) -> Set[psutil.Process]:
    """
    Collects the launched process and every descendant it spawned.

    :param proc: The psutil.Process captured at launch time.
    :return: A set of psutil.Process objects to be stopped.
    """
    all_procs_to_stop: Set[psutil.Process] = set()
    try:
        if not proc.is_running():
            return all_procs_to_stop
        all_procs_to_stop.add(proc)
        all_procs_to_stop.update(proc.children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {proc.pid} no longer exists, nothing to stop.")
    except psutil.AccessDenied:
        log.warning(f"Access denied while listing children of PID {proc.pid}.")
    return all_procs_to_stop


def _terminate_processes(processes: Set[psutil.Process]) -> None:
    """Sends SIGTERM (TerminateProcess on Windows) to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue
        except psutil.AccessDenied:
            log.error(f"Access denied when terminating PID {proc.pid}.")


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping forceful kill.")
            continue
        except psutil.AccessDenied:
            log.error(f"Access denied when killing PID {proc.pid}.")


def graceful_shutdown_sequence(processes: Set[psutil.Process], timeout: float) -> None:
    """
    Runs the full graceful shutdown sequence for the given processes.

    :param processes: A set of psutil.Process objects to shut down.
    :param timeout: Seconds to wait before force-killing survivors.
    """
    if not processes:
        return
    _terminate_processes(processes)

    # Wait and verify
    procs_list = list(processes)
    try:
        _, alive = psutil.wait_procs(procs_list, timeout=timeout)
    except psutil.TimeoutExpired:
        alive = procs_list
    except psutil.NoSuchProcess:
        alive = []

    # If any processes are still alive after the timeout, forcefully kill them.
    _forceful_kill(alive)
    if alive:
        psutil.wait_procs(alive, timeout=timeout)
