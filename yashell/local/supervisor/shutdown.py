import psutil
import logging
import threading
import subprocess
from typing import List

from yashell.local.errors import KillError

log = logging.getLogger(__name__)


def identify_descendants(pid: int) -> List[psutil.Process]:
    """
    Returns all live descendants of a process.

    Bundled runtimes may fork helper processes which would otherwise outlive
    the sidecar.

    :param pid: The sidecar PID.
    :return list: psutil.Process objects, possibly empty.
    """
    try:
        return psutil.Process(pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return []
    except psutil.Error as e:
        log.warning(f"Could not list children of PID {pid}: {e}")
        return []


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills the given processes, ignoring ones that are already gone."""
    for proc in processes:
        try:
            log.debug(f"Killing child process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.Error as e:
            log.warning(f"Failed to kill child process {proc.pid}: {e}")


def kill_process(process: subprocess.Popen) -> None:
    """
    Kills the sidecar and its descendants without a grace period.

    The call only issues the kill; it does not wait for the process to exit.

    :param process: The sidecar handle.
    :raises KillError: If the kill signal for the sidecar itself cannot be delivered.
    """
    if process.poll() is not None:
        log.debug(f"PID {process.pid} already exited with status {process.returncode}.")
        return

    _forceful_kill(identify_descendants(process.pid))
    try:
        process.kill()
    except ProcessLookupError:
        return
    except OSError as e:
        raise KillError(f"Failed to kill PID {process.pid}: {e}") from e
    reap_in_background(process)


def reap_in_background(process: subprocess.Popen) -> None:
    """Collects the exit status of a killed process so it does not linger as a zombie."""
    threading.Thread(
        target=process.wait,
        daemon=True,
        name=f"reaper-{process.pid}",
    ).start()
