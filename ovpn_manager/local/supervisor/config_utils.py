import logging
from pathlib import Path
from typing import Optional

from ovpn_manager.local import app_globals
from .process_utils import resolve_executable

log = logging.getLogger(__name__)


def check_configuration(openvpn_path: Optional[Path] = None) -> bool:
    """
    Validates that the OpenVPN executable exists at its configured path
    and that the working directories can be created.

    :param openvpn_path: Executable to check instead of the configured one.
    :return: True if everything required was found, otherwise False.
    """
    log.info("Performing configuration and path validation...")
    all_ok = True

    path = openvpn_path or app_globals.OPENVPN_PATH
    resolved = resolve_executable(path)
    if resolved is None:
        log.error(f"CONFIG CHECK FAILED: OpenVPN not found at '{path}'")
        all_ok = False
    else:
        log.info(f"Config Check OK: Found OpenVPN at '{resolved}'")

    for name, directory in (("Logs", app_globals.LOGS_DIR), ("Runtime", app_globals.RUNTIME_DIR)):
        try:
            directory.mkdir(parents=True, exist_ok=True)
            log.info(f"Config Check OK: {name} directory '{directory}'")
        except OSError as e:
            log.error(f"CONFIG CHECK FAILED: Cannot create {name.lower()} directory '{directory}': {e}")
            all_ok = False
    return all_ok
