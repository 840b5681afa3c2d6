import sys
import logging
from typing import List, Optional

# Basic console logger for messages BEFORE full setup is complete.
# This logger will be replaced by the full setup later.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)-8s - [shell] - %(message)s',
    stream=sys.stdout
)
log = logging.getLogger("shell")

from yashell.local.config import effective_settings as config
from yashell.local.console import console_loop, execute_command
from yashell.local.host import DesktopHost, SidecarLifecycle, register_commands
from yashell.local.supervisor import SidecarSupervisor
from yashell.log import setup_logging


def build_host(auto_start: Optional[bool] = None) -> DesktopHost:
    """
    Wires the supervisor, its commands and its lifecycle hook into a new host.

    :param auto_start: Start the sidecar on setup; defaults to VITE_SPAWN_CORE.
    :return DesktopHost: The host, ready to run.
    """
    host = DesktopHost()
    supervisor = SidecarSupervisor()
    host.manage(supervisor)
    register_commands(host)
    SidecarLifecycle(supervisor, auto_start=auto_start).attach(host)
    return host


def main(argv: Optional[List[str]] = None) -> None:
    """The main entry point for the desktop shell."""
    args = list(sys.argv[1:] if argv is None else argv)

    if "--verbose" in args:
        config.VERBOSE_LOGGING = True
        args.remove("--verbose")
    setup_logging(logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO)
    log.debug(f"Shell starting with arguments: {args}")

    # Non-interactive mode for one-off commands. The sidecar only lives as
    # long as the host, so nothing is auto-started here.
    if args:
        command, command_args = args[0].lower(), args[1:]
        host = build_host(auto_start=False)
        host.run(lambda h: execute_command(h, command, command_args))
        return

    host = build_host()
    host.run(console_loop)


if __name__ == "__main__":
    main()
    print("Exiting yaLLMa3 shell. See you next time!")
