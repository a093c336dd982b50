import sys
import time
import logging
import threading
import setproctitle

# Basic console logger for messages BEFORE full setup is complete.
# This logger will be replaced by the full setup later.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)-8s - [console] - %(message)s',
    stream=sys.stdout
)
log = logging.getLogger("console")

import ovpn_manager.local.console as console
from ovpn_manager.log.setup import setup_logging

# --- Global State ---
CONSOLE_LOCK = threading.Lock()


def main() -> None:
    """The main entry point for the console application."""
    setproctitle.setproctitle("OVPN Manager - Console")
    setup_logging(logging.INFO)
    console.controller.subscribe(on_status_changed=console.print_status_change)

    # Non-interactive mode for one-off commands
    if len(sys.argv) > 1:
        command, args = sys.argv[1].lower(), sys.argv[2:]
        # Check for verbose flag in non-interactive mode
        if "--verbose" in args:
            console.toggle_verbose_logging()
            args.remove("--verbose")

        console.execute_command(command, args)
        if console.controller.is_active:
            # A one-shot 'connect' keeps supervising until interrupted.
            _wait_for_session_end()
        return

    # Interactive mode
    print("--- OVPN Manager Console ---")
    print("Type 'help' for a list of commands.")
    while True:
        try:
            # The input prompt must be outside the lock to not block background threads
            command_line_str = input("> ")
            with CONSOLE_LOCK:
                if not command_line_str.strip():
                    continue
                command_line = command_line_str.strip().split()

                command, args = command_line[0].lower(), command_line[1:]

                log.debug(f"Received command: {command}, args: {args}")

                if console.execute_command(command, args):
                    break

        except (KeyboardInterrupt, EOFError):
            with CONSOLE_LOCK:
                log.warning("\nExiting console due to KeyboardInterrupt.")
                console.controller.shutdown()
                break
        except Exception as e:
            with CONSOLE_LOCK:
                log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)


def _wait_for_session_end() -> None:
    try:
        while console.controller.is_active:
            time.sleep(1)
    except KeyboardInterrupt:
        log.info("Interrupted. Disconnecting...")
    finally:
        console.controller.shutdown()


def run() -> None:
    main()
    print("Exiting console application. See you next time!")

if __name__ == "__main__":
    run()
