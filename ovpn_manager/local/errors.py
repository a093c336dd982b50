"""Exceptions raised by the connection controller and the process supervisor."""


class VPNManagerError(Exception):
    """Base class for all errors surfaced to callers."""


class LaunchError(VPNManagerError):
    """The VPN client executable is missing or could not be spawned."""


class NotConnectedError(VPNManagerError):
    """Disconnect was requested while no session is active."""

    def __init__(self, message: str = "You are not connected to a server.") -> None:
        super().__init__(message)
