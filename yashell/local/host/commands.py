"""
Named commands the UI invokes to control the sidecar.

Each command returns an (ok, message) tuple. Supervisor errors are turned into
messages here and never propagate into the host.
"""
import logging
from typing import Callable, Dict, TYPE_CHECKING

from yashell.local.errors import SidecarError
from yashell.local.supervisor import SidecarSupervisor
from yashell.local.supervisor.health import check_health

if TYPE_CHECKING:
    from .app import CommandResult, DesktopHost

log = logging.getLogger(__name__)


def _run(operation: Callable[[], str], action: str) -> "CommandResult":
    try:
        return True, operation()
    except SidecarError as e:
        log.error(f"Failed to {action} sidecar: {e}")
        return False, f"{type(e).__name__}: {e}"
    except Exception as e:
        log.error(f"Unexpected error while trying to {action} sidecar: {e}", exc_info=True)
        return False, f"Unexpected error: {e}"


def spawn_yallma3api(host: "DesktopHost") -> "CommandResult":
    return _run(host.state(SidecarSupervisor).start, "spawn")


def kill_yallma3api(host: "DesktopHost") -> "CommandResult":
    return _run(host.state(SidecarSupervisor).stop, "kill")


def get_yallma3api_status(host: "DesktopHost") -> "CommandResult":
    return _run(host.state(SidecarSupervisor).status, "check")


def get_yallma3api_health(host: "DesktopHost") -> "CommandResult":
    healthy, detail = check_health()
    return True, "healthy" if healthy else f"unhealthy: {detail}"


COMMANDS: Dict[str, Callable[["DesktopHost"], "CommandResult"]] = {
    "spawn_yallma3api": spawn_yallma3api,
    "kill_yallma3api": kill_yallma3api,
    "get_yallma3api_status": get_yallma3api_status,
    "get_yallma3api_health": get_yallma3api_health,
}


def register_commands(host: "DesktopHost") -> None:
    """Registers every sidecar command on the host."""
    for name, handler in COMMANDS.items():
        host.register_command(name, handler)
