import logging
from typing import List, TYPE_CHECKING

from yashell.local.console.handler import (
    display_status, handle_config_command, handle_logs_command,
    print_help, run_command, toggle_verbose_logging,
)

if TYPE_CHECKING:
    from yashell.local.host import DesktopHost

log = logging.getLogger(__name__)


def execute_command(host: "DesktopHost", command: str, args: List[str]) -> bool:
    """
    Executes a single command from the user.

    :param host: The running host whose sidecar commands are used.
    :param command: The main command string (e.g., 'spawn', 'config').
    :param args: A list of arguments for the command.
    :return bool: True if the console should exit, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "spawn": lambda: run_command(host, "spawn_yallma3api"),
        "start": lambda: run_command(host, "spawn_yallma3api"),
        "kill": lambda: run_command(host, "kill_yallma3api"),
        "stop": lambda: run_command(host, "kill_yallma3api"),
        "status": lambda: display_status(host),
        "health": lambda: run_command(host, "get_yallma3api_health"),
        "logs": lambda: handle_logs_command(args),
        "config": lambda: handle_config_command(args),
        "verbose": toggle_verbose_logging,
        "help": print_help,
    }

    if command == "exit":
        return True

    if command in command_map:
        command_map[command]()
    elif command == "restart":
        log.info("Killing sidecar...")
        if run_command(host, "kill_yallma3api"):
            log.info("Starting sidecar...")
            run_command(host, "spawn_yallma3api")
    else:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")

    return False


def console_loop(host: "DesktopHost") -> None:
    """Interactive prompt; returns when the user exits or stdin closes."""
    print("--- yaLLMa3 Desktop Shell ---")
    print("Type 'help' for a list of commands.")

    while not host.closing:
        try:
            command_line_str = input("> ")
        except EOFError:
            break
        command_line = command_line_str.strip().split()
        if not command_line:
            continue

        command, args = command_line[0].lower(), command_line[1:]
        try:
            if execute_command(host, command, args):
                break
        except Exception as e:
            log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)
