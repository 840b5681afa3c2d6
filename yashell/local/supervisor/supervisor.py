import time
import logging
import threading
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from yashell.local import paths
from yashell.local.config import effective_settings as config
from yashell.local.errors import KillError, ReapError, SpawnError
from yashell.local.supervisor import process_utils, shutdown
from .log_sink import LogSink
from .resolver import ResolvedPath, resolve_for_host

log = logging.getLogger(__name__)

ALREADY_RUNNING = "already running"
SPAWNED = "spawned successfully"
KILLED = "killed successfully"
NOT_RUNNING = "not running"
RUNNING = "running"
EXITED = "exited with status: {code}"


class SidecarSupervisor:
    """
    Owns the single sidecar process handle and the lock around it.

    The supervisor is created once by the host and shared by reference with
    every caller. `start`, `stop` and `status` all take the same lock, so at
    most one process is ever spawned or killed at a time. Output drains run on
    their own threads and never touch the lock.
    """

    def __init__(
        self,
        resolver: Callable[[], ResolvedPath] = resolve_for_host,
        log_dir_provider: Callable[[], Path] = paths.get_app_log_dir,
        interpreter_probe: Callable[[str], Any] = process_utils.probe_interpreter,
        name: Optional[str] = None,
        auto_clear_exited: Optional[bool] = None,
    ) -> None:
        """
        :param resolver: Returns where the sidecar lives; called on every start.
        :param log_dir_provider: Returns the directory of server.log; called on every start.
        :param interpreter_probe: Raises InterpreterUnavailable when an interpreter is missing.
        :param name: Logical process name used for logging.
        :param auto_clear_exited: Drop the handle once status() sees the process has exited.
            None defers to settings.SIDECAR_AUTO_CLEAR_EXITED at call time.
        """
        self.name = name or config.SIDECAR_NAME
        self._resolver = resolver
        self._log_dir_provider = log_dir_provider
        self._interpreter_probe = interpreter_probe
        self._auto_clear_exited = auto_clear_exited

        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._resolved: Optional[ResolvedPath] = None
        self._started_at: Optional[float] = None
        self._drains: List[threading.Thread] = []

    def _should_auto_clear(self) -> bool:
        if self._auto_clear_exited is not None:
            return self._auto_clear_exited
        return bool(config.SIDECAR_AUTO_CLEAR_EXITED)

    def _is_held_locked(self) -> bool:
        if self._process is None:
            return False
        log.info(f"{self.name} is already running (PID {self._process.pid}).")
        return True

    def _clear_locked(self) -> None:
        self._process = None
        self._resolved = None
        self._started_at = None
        self._drains = []

    def start(self) -> str:
        """
        Spawns the sidecar unless a handle is already held.

        :return str: 'already running' or 'spawned successfully'.
        :raises PathUnavailable: If the sidecar location cannot be determined.
        :raises InterpreterUnavailable: If the required interpreter is missing.
        :raises SpawnError: If the log sink or the process cannot be created.
        """
        with self._lock:
            if self._is_held_locked():
                return ALREADY_RUNNING

        # Resolution and the interpreter probe run outside the lock; the handle is re-checked below.
        resolved = self._resolver()
        log.info(f"Using executable: {resolved.path}")
        if resolved.requires_interpreter:
            self._interpreter_probe(resolved.interpreter)

        with self._lock:
            if self._is_held_locked():
                return ALREADY_RUNNING

            log_dir = self._log_dir_provider()
            try:
                sink = LogSink.open(log_dir)
            except OSError as e:
                raise SpawnError(f"Failed to open {self.name} log in '{log_dir}': {e}") from e

            with sink:
                process = process_utils.spawn_process(resolved, log_dir)
                sink.write_banner(process.pid, resolved)
                try:
                    drains = process_utils.start_drains(process, self.name, sink)
                except (OSError, ValueError) as e:
                    process.kill()
                    shutdown.reap_in_background(process)
                    raise SpawnError(f"Failed to capture {self.name} output: {e}") from e

            self._process = process
            self._resolved = resolved
            self._started_at = time.time()
            self._drains = drains
            log.info(f"{self.name} started successfully with PID: {process.pid}")
            return SPAWNED

    def stop(self) -> str:
        """
        Takes the handle out and kills the process it refers to.

        :return str: 'killed successfully' or 'not running'.
        :raises KillError: If the kill fails; the handle is left in place.
        """
        with self._lock:
            process = self._process
            if process is None:
                return NOT_RUNNING
            self._process = None
            try:
                shutdown.kill_process(process)
            except KillError:
                self._process = process
                raise
            log.info(f"{self.name} (PID {process.pid}) killed.")
            self._clear_locked()
            return KILLED

    def status(self) -> str:
        """
        Reports the state of the held process without blocking.

        An exited process keeps its handle until stop() is called, unless
        auto-clear is enabled.

        :return str: 'running', 'exited with status: <code>' or 'not running'.
        :raises ReapError: If the exit check fails.
        """
        with self._lock:
            process = self._process
            if process is None:
                return NOT_RUNNING
            try:
                code = process.poll()
            except OSError as e:
                raise ReapError(f"Failed to check {self.name} status: {e}") from e
            if code is None:
                return RUNNING
            if self._should_auto_clear():
                log.info(f"{self.name} (PID {process.pid}) exited with status {code}. Clearing handle.")
                self._clear_locked()
            return EXITED.format(code=code)

    def process_info(self) -> Optional[Dict[str, Any]]:
        """Returns pid, resolved path and start time of the held process, if any."""
        with self._lock:
            if self._process is None:
                return None
            return {
                "pid": self._process.pid,
                "path": self._resolved.path if self._resolved else None,
                "interpreter": self._resolved.interpreter if self._resolved else None,
                "started_at": self._started_at,
                "returncode": self._process.returncode,
            }
