import os
import logging
from pathlib import Path

log = logging.getLogger(__name__)


def write_auth_file(auth_path: Path, username: str, password: str) -> Path:
    """
    Atomically writes the credential file consumed by `--auth-user-pass`.
    The file is recreated on every call and is readable by the owner only.

    :param auth_path: Destination of the credential file.
    :param username: VPN username, first line of the file.
    :param password: VPN password, second line of the file.
    :return: The path that was written.
    """
    auth_path = Path(auth_path)
    auth_path.parent.mkdir(parents=True, exist_ok=True)
    temp_auth_path = auth_path.with_suffix(".tmp")
    try:
        fd = os.open(temp_auth_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(f"{username}\n{password}")
        temp_auth_path.replace(auth_path)
        log.debug(f"Credential file written to {auth_path}")
    finally:
        temp_auth_path.unlink(missing_ok=True)
    return auth_path


def remove_auth_file(auth_path: Path) -> None:
    """Deletes the credential file. Missing files are ignored."""
    try:
        Path(auth_path).unlink(missing_ok=True)
        log.debug(f"Credential file {auth_path} removed.")
    except OSError as e:
        log.warning(f"Failed to remove credential file '{auth_path}': {e}")


def clear_stale_log(log_path: Path) -> None:
    """
    Removes a log file left over from a previous session so an old
    success marker cannot be mistaken for the new connection.
    """
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        log_path.unlink(missing_ok=True)
    except OSError as e:
        log.warning(f"Could not remove stale log file '{log_path}': {e}")
