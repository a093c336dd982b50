import sys
import time
import psutil
import getpass
import logging
from typing import List
from ovpn_manager.local import app_globals
from ovpn_manager.local.controller import Credentials, VPNController
from ovpn_manager.local.errors import LaunchError, NotConnectedError
from ovpn_manager.local.supervisor import process_utils

# --- Platform-specific non-blocking keypress detection ---
try:
    import msvcrt
    def is_keypress_waiting() -> bool:
        return msvcrt.kbhit()
    def clear_keypress_buffer() -> None:
        # Read all waiting characters to clear the buffer
        while msvcrt.kbhit():
            msvcrt.getch()
except ImportError:
    import select
    import termios
    import tty
    def is_keypress_waiting() -> bool:
        return select.select([sys.stdin], [], [], 0) == ([sys.stdin], [], [])
    def clear_keypress_buffer() -> None:
        # For non-Windows, need to switch to raw mode temporarily to read without Enter
        old_settings = termios.tcgetattr(sys.stdin)
        try:
            tty.setcbreak(sys.stdin.fileno())
            while is_keypress_waiting():
                sys.stdin.read(1)
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)

log = logging.getLogger(__name__)
controller = VPNController()


def print_status_change(status: str) -> None:
    """Status listener used by the console."""
    print(f"Status: {status}")


def handle_connect_command(args: List[str]) -> None:
    """Handles 'connect <config.ovpn> [username]'. The password is always prompted for."""
    if not args:
        print("Usage: connect <config.ovpn> [username]")
        return

    config_path = args[0]
    username = args[1] if len(args) > 1 else input("Username: ").strip()
    password = getpass.getpass("Password: ")
    if not username or not password:
        print("Error: Enter both username and password before connecting.")
        return

    try:
        controller.connect(Credentials(username, password), config_path)
    except LaunchError as e:
        print(f"\nERROR: {e}")
        print("Run 'check-config' or 'config set OPENVPN_PATH <path>' to fix the executable path.\n")


def handle_disconnect_command() -> None:
    try:
        controller.disconnect()
    except NotConnectedError as e:
        print(f"{e}")


def _config_show():
    """Displays the current configuration settings."""
    print("\n--- Current Configuration ---")
    for key, value in app_globals.modifiable_values().items():
        print(f"  {key} = {value}")
    print("---")
    print("Use 'config set <KEY> <VALUE>' to change a setting.")
    print("Changes apply to the next connection.")
    print("-----------------------------\n")

def _config_set(args: List[str]):
    """Sets a configuration setting and persists it to the overrides file."""
    if len(args) < 2:
        print("Usage: config set <SETTING_NAME> <VALUE>")
        return

    key, value_str = args[0].upper(), " ".join(args[1:])
    success, message = app_globals.update_setting(key, value_str)
    if success:
        print(message)
    else:
        print(f"Error: {message}")

def _config_help():
    """Displays help for the config command."""
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Change a setting. Applies to the next connection.")
    print("  config help                - Show this help message.")
    print("Use 'check-config' to validate the OpenVPN executable path.")

def handle_config_command(args: List[str]) -> None:
    """
    Handles all sub-commands for the 'config' command-line interface.

    :param args: A list of string arguments following the 'config' command.
    """
    if not args:
        sub_command = "show" # Default to showing config
    else:
        sub_command = args[0].lower()

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")

def display_status() -> None:
    """Displays the connection state and the resource usage of the VPN client."""
    info = controller.status()
    print("\n--- Connection Status ---")
    print(f"  State      : {info['state']}")
    if "pid" not in info:
        print("-" * 25 + "\n")
        return

    print(f"  Config     : {info['config_path']}")
    print(f"  Log        : {info['log_path']}")
    print(f"  Uptime     : {time.strftime('%H:%M:%S', time.gmtime(info['uptime_seconds']))}")
    pid = info["pid"]
    try:
        p = process_utils.get_process_from_pid(pid)
        cpu = p.cpu_percent(interval=0.1)
        mem = p.memory_info().rss
        print(f"  Process    : {p.name()} | PID {pid} | Status: {p.status().upper()} | CPU: {cpu:.1f}% | MEM: {mem/1024/1024:.1f} MB")
    except psutil.NoSuchProcess:
        print(f"  Process    : PID {pid} | Status: STOPPED")
    except psutil.AccessDenied:
        print(f"  Process    : PID {pid} | Status: RUNNING (Access Denied)")
    print("-" * 25 + "\n")

def handle_logs_command() -> None:
    """
    Handles the 'logs' command: prints the tail of the VPN client's log and
    follows it until a key is pressed.
    """
    session = controller.session
    log_path = session.log_path if session else app_globals.OPENVPN_LOG_PATH
    if not log_path.exists():
        print(f"No VPN log found at '{log_path}'.")
        return

    print(f"\n--- Displaying last {app_globals.LOG_HISTORY_COUNT} lines of {log_path} ---")
    content = process_utils.read_log_file(log_path)
    for line in content.splitlines()[-app_globals.LOG_HISTORY_COUNT:]:
        print(line)
    offset = len(content)

    print("\n--- Now tailing new log entries (Press any key to stop) ---\n")

    try:
        while not is_keypress_waiting():
            content = process_utils.read_log_file(log_path)
            if len(content) < offset:
                offset = 0
            new_text = content[offset:]
            if new_text:
                print(new_text, end="" if new_text.endswith("\n") else "\n")
                offset = len(content)
            time.sleep(1) # Poll interval
        clear_keypress_buffer()
        print("\n--- Log tailing stopped. Returning to console. ---")
    except (KeyboardInterrupt, SystemExit):
        print("\n--- Log tailing interrupted. Returning to console. ---")
        raise
    except Exception as e:
        log.error(f"An error occurred during log tailing: {e}", exc_info=True)

def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    app_globals.VERBOSE_LOGGING = not app_globals.VERBOSE_LOGGING
    new_level = logging.DEBUG if app_globals.VERBOSE_LOGGING else logging.INFO

    # Reconfigure the console handler's level directly
    root_logger = logging.getLogger()
    found_handler = False
    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(new_level)
            found_handler = True
            break

    status = "ON" if app_globals.VERBOSE_LOGGING else "OFF"
    if found_handler:
        print(f"Verbose console logging is now {status}.")
        log.debug("Debug logging test: This message should only appear when verbose is ON.")
    else:
        print("Could not find console handler to modify level.")

def print_help():
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  connect <config> [user]  - Start OpenVPN with the given .ovpn file (password is prompted).")
    print("  disconnect               - Terminate the VPN client and end the session.")
    print("  status                   - Show the connection state and client resource usage.")
    print("  logs                     - Show the VPN log and tail new lines in real-time.")
    print("  check-config             - Validate the OpenVPN executable path.")
    print("  config <cmd>             - Manage configuration. Use 'config help' for more details.")
    print("  verbose                  - Toggle detailed DEBUG log output in the console.")
    print("  exit                     - Disconnect and exit the management console.")
    print()
