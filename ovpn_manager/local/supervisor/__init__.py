"""
The Supervisor package.
Manages the lifecycle of the VPN client process.

This package contains the ProcessSupervisor and its helper modules, which
together handle launching, liveness checks and termination of the client.
The polling tasks live in `watcher` and `background_tasks`; they depend on
the session module and are imported from there directly.
"""
from .supervisor import ProcessSupervisor, ProcessHandle

__all__ = ['ProcessSupervisor', 'ProcessHandle']
