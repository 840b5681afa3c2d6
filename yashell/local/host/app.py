import signal
import logging
import threading
import setproctitle
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from yashell.local.config import effective_settings as config

log = logging.getLogger(__name__)

SETUP = "setup"
CLOSE_REQUESTED = "close-requested"

T = TypeVar("T")
CommandResult = Tuple[bool, str]


class DesktopHost:
    """
    Minimal host runtime the sidecar supervisor plugs into.

    It keeps shared state objects, dispatches named commands onto a small
    worker pool so callers never block the UI thread, and emits the `setup`
    and `close-requested` lifecycle signals around the UI loop.
    """

    def __init__(self, title: Optional[str] = None, max_workers: Optional[int] = None) -> None:
        self.title = title or config.HOST_PROCESS_TITLE
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.HOST_WORKER_THREADS,
            thread_name_prefix="host-task",
        )
        self._state: Dict[type, Any] = {}
        self._commands: Dict[str, Callable[..., CommandResult]] = {}
        self._listeners: Dict[str, List[Callable[["DesktopHost"], Any]]] = defaultdict(list)
        self._close_lock = threading.Lock()
        self._closed = threading.Event()

    #* --- State & Commands ---
    def manage(self, obj: Any) -> None:
        """Registers a shared state object, retrievable by its type."""
        self._state[type(obj)] = obj

    def state(self, cls: Type[T]) -> T:
        try:
            return self._state[cls]
        except KeyError:
            raise LookupError(f"No managed state of type '{cls.__name__}'") from None

    def register_command(self, name: str, handler: Callable[..., CommandResult]) -> None:
        self._commands[name] = handler

    @property
    def command_names(self) -> List[str]:
        return sorted(self._commands)

    def invoke(self, name: str, *args: Any) -> "Future[CommandResult]":
        """
        Schedules a named command on the worker pool.

        :param name: The registered command name.
        :return Future: Resolves to the command's (ok, message) result.
        :raises KeyError: If the command is unknown.
        """
        if name not in self._commands:
            raise KeyError(f"Unknown command '{name}'")
        return self._executor.submit(self._commands[name], self, *args)

    def call(self, name: str, *args: Any, timeout: Optional[float] = None) -> CommandResult:
        """Invokes a command and waits for its result."""
        return self.invoke(name, *args).result(timeout=timeout)

    def spawn(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        """Runs a background task on the worker pool."""
        return self._executor.submit(fn, *args)

    #* --- Lifecycle Signals ---
    def on(self, event: str, callback: Callable[["DesktopHost"], Any]) -> None:
        self._listeners[event].append(callback)

    def emit(self, event: str) -> None:
        """Calls every listener of `event` in order. Listener failures are logged."""
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(self)
            except Exception as e:
                log.error(f"Listener for '{event}' failed: {e}", exc_info=True)

    @property
    def closing(self) -> bool:
        return self._closed.is_set()

    def request_close(self) -> None:
        """Emits `close-requested` exactly once, blocking until every listener returns."""
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()
        log.info("Close requested. Shutting down host.")
        self.emit(CLOSE_REQUESTED)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        log.warning(f"Received signal {signal.Signals(signum).name}.")
        raise KeyboardInterrupt

    def install_signal_handlers(self) -> None:
        """Turns SIGTERM (and SIGBREAK on Windows) into a regular close request."""
        if threading.current_thread() is not threading.main_thread():
            log.debug("Not on the main thread. Signal handlers not installed.")
            return
        for name in ("SIGTERM", "SIGBREAK"):
            signum = getattr(signal, name, None)
            if signum is not None:
                signal.signal(signum, self._handle_signal)

    def run(self, ui_loop: Callable[["DesktopHost"], Any]) -> None:
        """
        Runs the host: setup signal, UI loop, then close-requested.

        The close signal fires however the UI loop ends, including interrupts
        and unexpected errors, so managed processes never outlive the host.

        :param ui_loop: Blocks for the lifetime of the UI.
        """
        setproctitle.setproctitle(self.title)
        self.install_signal_handlers()
        self.emit(SETUP)
        try:
            ui_loop(self)
        except KeyboardInterrupt:
            log.warning("Host interrupted.")
        finally:
            self.request_close()
            self._executor.shutdown(wait=False, cancel_futures=True)
