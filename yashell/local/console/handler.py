import time
import psutil
import logging
from collections import deque
from typing import List, TYPE_CHECKING

from yashell.local.config import effective_settings as config
from yashell.local.errors import PathUnavailable
from yashell.local.paths import get_app_log_dir
from yashell.local.supervisor import SidecarSupervisor
from yashell.log import get_console_handler

if TYPE_CHECKING:
    from yashell.local.host import DesktopHost

log = logging.getLogger(__name__)


def run_command(host: "DesktopHost", name: str) -> bool:
    """Runs a host command and prints its outcome. Returns the command's ok flag."""
    ok, message = host.call(name)
    if ok:
        print(f"{config.SIDECAR_NAME} {message}")
    else:
        print(f"ERROR: {message}")
    return ok


def display_status(host: "DesktopHost") -> None:
    """Shows the sidecar status, including resource usage while it is alive."""
    ok, message = host.call("get_yallma3api_status")
    print(f"\n--- {config.SIDECAR_NAME} Status ---")
    if not ok:
        print(f"  ERROR: {message}\n")
        return
    print(f"  Status: {message}")

    info = host.state(SidecarSupervisor).process_info()
    if info is None:
        print("-" * 26 + "\n")
        return

    pid = info["pid"]
    print(f"  Path: {info['path']}" + (f" (via {info['interpreter']})" if info["interpreter"] else ""))
    try:
        p = psutil.Process(pid)
        cpu = p.cpu_percent(interval=0.1)
        mem = p.memory_info().rss
        children = p.children(recursive=True)
        print(f"  PID {pid:<8} | Status: {p.status().upper()} | CPU: {cpu:.1f}% | MEM: {mem/1024/1024:.1f} MB")
        if children:
            print(f"  Child processes: {', '.join(str(c.pid) for c in children)}")
    except psutil.NoSuchProcess:
        print(f"  PID {pid:<8} | Status: STOPPED")
    except psutil.AccessDenied:
        print(f"  PID {pid:<8} | Status: RUNNING (Access Denied)")

    if info["started_at"]:
        print(f"  Runtime: {time.strftime('%H:%M:%S', time.gmtime(time.time() - info['started_at']))}")
    if info["returncode"] is not None:
        print("\nThe process has exited. Run 'kill' to release it or 'restart' to start it again.")
    print("-" * 26 + "\n")


def handle_logs_command(args: List[str]) -> None:
    """Prints the last lines of the sidecar log (server.log)."""
    try:
        count = int(args[0]) if args else int(config.LOG_HISTORY_COUNT)
    except ValueError:
        print("Usage: logs [number_of_lines]")
        return

    try:
        log_path = get_app_log_dir() / config.SIDECAR_LOG_FILE_NAME
    except PathUnavailable as e:
        print(f"ERROR: {e}")
        return
    if not log_path.exists():
        print(f"No sidecar log found at '{log_path}'.")
        return

    try:
        with log_path.open('r', encoding='utf-8', errors='replace') as f:
            lines = deque(f, maxlen=count)
    except OSError as e:
        log.error(f"Failed to read '{log_path}': {e}")
        return

    print(f"\n--- Last {len(lines)} lines of {log_path} ---")
    for line in lines:
        print(line.rstrip("\n"))
    print()


def _config_show() -> None:
    print("\n--- Current Application Configuration ---")
    print(f"(Overrides file: {config.OVERRIDES_JSON_PATH})")
    for key, value in config.modifiable_values().items():
        print(f"  {key} = {value}")
    print("---")
    print("Use 'config set <KEY> <VALUE>' to change a setting.")
    print("---------------------------------------\n")


def _config_set(args: List[str]) -> None:
    if len(args) < 2:
        print("Usage: config set <SETTING_NAME> <VALUE>")
        return
    key, value_str = args[0].upper(), " ".join(args[1:])
    ok, message = config.update_setting(key, value_str)
    print(message if ok else f"Error: {message}")


def _config_help() -> None:
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Change a setting and persist it to overrides.json.")
    print("  config help                - Show this help message.")


def handle_config_command(args: List[str]) -> None:
    """
    Handles all sub-commands for the 'config' command-line interface.

    :param args: A list of string arguments following the 'config' command.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")


def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    config.VERBOSE_LOGGING = not config.VERBOSE_LOGGING
    new_level = logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO

    handler = get_console_handler()
    status = "ON" if config.VERBOSE_LOGGING else "OFF"
    if handler is None:
        print("Could not find console handler to modify level.")
        return
    handler.setLevel(new_level)
    print(f"Verbose console logging is now {status}.")
    log.debug("Debug logging test: This message should only appear when verbose is ON.")


def print_help() -> None:
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  spawn                  - Start the API sidecar.")
    print("  kill                   - Kill the API sidecar.")
    print("  restart                - Kill and then start the API sidecar.")
    print("  status                 - Show the sidecar status and resource usage.")
    print("  health                 - Query the sidecar's health endpoint.")
    print("  logs [lines]           - Show the last lines of server.log.")
    print("  config <cmd>           - Manage configuration. Use 'config help' for more details.")
    print("  verbose                - Toggle detailed DEBUG log output in the console.")
    print("  exit                   - Close the shell (kills the sidecar).")
    print()
