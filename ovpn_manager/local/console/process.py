import logging
from typing import List
from ovpn_manager.local.supervisor.config_utils import check_configuration
from ovpn_manager.local.console.handler import (
    controller, display_status, handle_config_command, handle_connect_command,
    handle_disconnect_command, handle_logs_command, toggle_verbose_logging, print_help
)

log = logging.getLogger(__name__)


def execute_command(command: str, args: List[str]) -> bool:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'connect', 'config').
    :param args: A list of arguments for the command.
    :return bool: True if the console should exit, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "connect": lambda: handle_connect_command(args),
        "disconnect": handle_disconnect_command,
        "status": display_status,
        "logs": handle_logs_command,
        "check-config": check_configuration,
        "config": lambda: handle_config_command(args),
        "verbose": toggle_verbose_logging,
        "help": print_help,
    }

    if command == "exit":
        controller.shutdown()
        return True

    if command in command_map:
        command_map[command]()
    else:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")

    return False
