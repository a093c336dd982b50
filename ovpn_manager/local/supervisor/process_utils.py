import sys
import shutil
import psutil
import logging
import threading
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def get_process_from_pid(pid: int) -> psutil.Process:
    """A wrapper for psutil.Process for easy testing/mocking if needed."""
    return psutil.Process(pid)

def is_process_alive(proc: psutil.Process) -> bool:
    """
    True while the exact process captured at launch is alive.
    psutil compares the creation time, so a recycled PID is reported as gone.
    """
    try:
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # The process exists but belongs to someone else (e.g. elevated openvpn).
        return True

#* --- Log File Access ---
def read_log_file(log_path: Path) -> str:
    """
    Returns the full contents of the VPN client's log file.
    A missing or unreadable file is treated as empty.
    """
    try:
        with open(log_path, 'r', encoding='utf-8', errors='replace') as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except OSError as e:
        log.debug(f"Could not read log file '{log_path}': {e}")
        return ""

#* --- Process Creation ---
def resolve_executable(executable: Union[str, Path]) -> Optional[Path]:
    """
    Resolves an executable given as a path or as a bare command name.

    :return: The resolved path, or None if it does not exist.
    """
    path = Path(executable)
    if path.is_file():
        return path
    if path.parent == Path("."):
        found = shutil.which(str(executable))
        if found:
            return Path(found)
    return None

def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific creation flags for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}

def build_openvpn_args(config_path: Path, auth_path: Path, log_path: Path) -> List[str]:
    """Returns the OpenVPN command-line arguments for one connection."""
    return [
        "--config", str(config_path),
        "--auth-user-pass", str(auth_path),
        "--log", str(log_path),
    ]

def _read_pipe(pipe, process_name: str, level: int, line_handler: Optional[Callable] = None):
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            if line_handler:
                line_handler(line)
            else:
                proc_logger.log(level, line)
    except Exception as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()

def log_process_output(process: subprocess.Popen, name: str, line_handler: Optional[Callable] = None):
    """Starts background threads to consume and log a process's stdout/stderr."""
    if process.stdout:
        threading.Thread(target=_read_pipe, args=(process.stdout, name, logging.INFO, line_handler), daemon=True, name=f"{name}-stdout").start()
    if process.stderr:
        threading.Thread(target=_read_pipe, args=(process.stderr, name, logging.ERROR), daemon=True, name=f"{name}-stderr").start()

def spawn_process(executable: Path, args: List[str], cwd: Optional[Path] = None) -> subprocess.Popen:
    """Spawns the executable detached from the console with its output piped back for logging."""
    popen_kwargs = _get_popen_creation_flags()
    return subprocess.Popen(
        [str(executable), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        cwd=str(cwd) if cwd else None,
        **popen_kwargs,
    )
