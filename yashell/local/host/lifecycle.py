import logging
from concurrent.futures import Future
from typing import Optional, TYPE_CHECKING

import yashell.settings as default_settings
from yashell.local.config import effective_settings as config
from yashell.local.errors import SidecarError
from yashell.local.supervisor import SidecarSupervisor
from yashell.local.supervisor.health import wait_until_healthy
from yashell.local.supervisor.supervisor import SPAWNED
from .app import CLOSE_REQUESTED, SETUP

if TYPE_CHECKING:
    from .app import DesktopHost

log = logging.getLogger(__name__)


class SidecarLifecycle:
    """
    Binds the supervisor to the host's startup and shutdown.

    On setup the sidecar is started in the background (when auto-start is
    enabled). On close the sidecar is killed synchronously before the host
    goes away.
    """

    def __init__(self, supervisor: SidecarSupervisor, auto_start: Optional[bool] = None,
                 health_check: Optional[bool] = None) -> None:
        self.supervisor = supervisor
        self.auto_start = default_settings.sidecar_auto_start() if auto_start is None else auto_start
        self.health_check = config.HEALTH_CHECK_ON_START if health_check is None else health_check

    def attach(self, host: "DesktopHost") -> None:
        host.on(SETUP, self.on_setup)
        host.on(CLOSE_REQUESTED, self.on_close_requested)

    def on_setup(self, host: "DesktopHost") -> Optional["Future"]:
        """Schedules the auto-start without blocking the host."""
        if not self.auto_start:
            log.info(f"{config.AUTO_START_ENV_VAR} is false. Not starting {self.supervisor.name}.")
            return None
        return host.spawn(self.auto_start_sidecar)

    def auto_start_sidecar(self) -> Optional[str]:
        """
        Starts the sidecar, logging instead of raising on failure.

        :return str: The start result, or None if the start failed.
        """
        try:
            result = self.supervisor.start()
        except SidecarError as e:
            log.error(f"Failed to start {self.supervisor.name}: {e}")
            return None
        except Exception as e:
            log.critical(f"Unexpected error while starting {self.supervisor.name}: {e}", exc_info=True)
            return None

        log.info(f"{self.supervisor.name} {result}")
        if self.health_check and result == SPAWNED:
            wait_until_healthy()
        return result

    def on_close_requested(self, host: "DesktopHost") -> str:
        """
        Kills the sidecar. Blocks until the kill is issued, not until the process exits.

        :return str: The stop result or the error message.
        """
        try:
            result = self.supervisor.stop()
        except SidecarError as e:
            log.error(f"Failed to stop {self.supervisor.name} on shutdown: {e}")
            return str(e)
        log.info(f"{self.supervisor.name} {result} on shutdown.")
        return result
