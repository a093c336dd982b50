"""
This module contains the configuration settings for the OVPN Manager.
It defines paths, the OpenVPN client location, polling behaviour and logging options.
It is used throughout the application to ensure consistent settings and paths.
"""

import os
import sys
import shutil
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes', 'y')

#* --- Core Paths ---
BASE_DIR = pathlib.Path(os.getenv("OVPN_MANAGER_HOME") or pathlib.Path.cwd()).resolve()
LOGS_DIR = BASE_DIR / "logs"
RUNTIME_DIR = BASE_DIR / "runtime"

#* --- Application File Paths ---
OVERRIDES_JSON_PATH = RUNTIME_DIR / "overrides.json"
AUTH_FILE_PATH = RUNTIME_DIR / "auth.txt"
OPENVPN_LOG_PATH = LOGS_DIR / "openvpn.log"
APP_LOG_PATH = LOGS_DIR / "ovpn_manager.log"

#* --- External Executable ---
if sys.platform == "win32":
    DEFAULT_OPENVPN_PATH = r"C:\Program Files\OpenVPN\bin\openvpn.exe"
else:
    DEFAULT_OPENVPN_PATH = shutil.which("openvpn") or "/usr/sbin/openvpn"
OPENVPN_PATH = pathlib.Path(os.getenv("OPENVPN_PATH", DEFAULT_OPENVPN_PATH))

#* --- Connection Supervision ---
# OpenVPN writes this line once the tunnel is fully up.
SUCCESS_MARKER = os.getenv("OPENVPN_SUCCESS_MARKER", "Initialization Sequence Completed")
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "1.0"))
LIVENESS_CHECK_ENABLED = _env_flag("LIVENESS_CHECK_ENABLED", "True")
LIVENESS_POLL_INTERVAL_SECONDS = float(os.getenv("LIVENESS_POLL_INTERVAL_SECONDS", "1.0"))
GRACEFUL_SHUTDOWN_TIMEOUT = 5.0  # seconds before force-killing

#* --- Session Files ---
REMOVE_AUTH_FILE_ON_DISCONNECT = _env_flag("REMOVE_AUTH_FILE_ON_DISCONNECT", "True")
CLEAR_STALE_LOG = _env_flag("CLEAR_STALE_LOG", "True")

#* --- Console ---
LOG_HISTORY_COUNT = 50
VERBOSE_LOGGING = False

#* --- MODIFIABLE SETTINGS (Changeable at runtime via 'config' command) ---
MODIFIABLE_SETTINGS = {
    "OPENVPN_PATH",
    "SUCCESS_MARKER",
    "POLL_INTERVAL_SECONDS",
    "LIVENESS_CHECK_ENABLED",
    "LIVENESS_POLL_INTERVAL_SECONDS",
    "GRACEFUL_SHUTDOWN_TIMEOUT",
    "REMOVE_AUTH_FILE_ON_DISCONNECT",
    "CLEAR_STALE_LOG",
    "LOG_HISTORY_COUNT",
}
