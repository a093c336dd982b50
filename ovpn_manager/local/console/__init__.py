"""
This module initializes the console package, exposing key functionalities for command execution,
the shared VPN controller, toggling verbose logging, and printing help information.
"""

from .process import execute_command
from .handler import controller, print_status_change, toggle_verbose_logging, print_help

__all__ = ["execute_command", "controller", "print_status_change", "toggle_verbose_logging", "print_help"]
