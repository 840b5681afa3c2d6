import os
import sys
import shutil
import logging
import threading
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from yashell.local.config import effective_settings as config
from yashell.local.errors import InterpreterUnavailable, SpawnError
from .log_sink import LogSink, STDOUT, STDERR
from .resolver import ResolvedPath

log = logging.getLogger(__name__)


#* --- Interpreter Probe ---
def probe_interpreter(interpreter: str, timeout: Optional[float] = None) -> str:
    """
    Verifies that an interpreter can be executed by asking for its version.

    :param interpreter: The interpreter name or path (e.g. 'node').
    :param timeout: Seconds to wait for the probe to finish.
    :return str: The reported version string.
    :raises InterpreterUnavailable: If the interpreter is missing or the probe fails.
    """
    executable = shutil.which(interpreter) or interpreter
    timeout = timeout if timeout is not None else config.INTERPRETER_PROBE_TIMEOUT
    try:
        result = subprocess.run(
            [executable, "--version"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            check=False,
            **get_popen_creation_flags(detached=False),
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise InterpreterUnavailable(
            f"{interpreter} is not installed or not found in PATH: {e}"
        ) from e

    if result.returncode != 0:
        raise InterpreterUnavailable(
            f"{interpreter} --version exited with status {result.returncode}"
        )
    version = (result.stdout or result.stderr).decode("utf-8", errors="replace").strip()
    log.debug(f"Interpreter check OK: {interpreter} {version}")
    return version


#* --- Process Creation ---
def get_popen_creation_flags(detached: bool = True) -> Dict[str, Any]:
    """
    Returns platform-specific creation flags for subprocess.Popen.

    On Windows, this hides the console window of the child. On other
    platforms the sidecar gets its own session so terminal signals aimed at
    the host do not reach it; the shell terminates it explicitly.

    :param detached: Put the child in a new session (non-Windows only).
    :return dict: A dictionary of keyword arguments for Popen.
    """
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True} if detached else {}


def build_child_env(log_dir: Path, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Returns the sidecar environment with the log directory contract applied."""
    env = dict(os.environ if base_env is None else base_env)
    env[config.LOG_DIR_ENV_VAR] = str(log_dir)
    return env


def spawn_process(resolved: ResolvedPath, log_dir: Path, cwd: Optional[Path] = None) -> subprocess.Popen:
    """
    Launches the sidecar with both output streams captured.

    :param resolved: What to run.
    :param log_dir: Exported to the child through settings.LOG_DIR_ENV_VAR.
    :param cwd: Working directory of the child; defaults to the entry point's directory.
    :return subprocess.Popen: The running child.
    :raises SpawnError: If the OS refuses to create the process.
    """
    args: List[str] = resolved.command()
    if cwd is None and resolved.path.parent.is_dir():
        cwd = resolved.path.parent
    log.debug(f"Spawning {config.SIDECAR_NAME}: {args} (cwd={cwd})")
    try:
        return subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            cwd=str(cwd) if cwd else None,
            env=build_child_env(log_dir),
            **get_popen_creation_flags(),
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        raise SpawnError(f"Failed to spawn {config.SIDECAR_NAME}: {e}") from e


#* --- Output Drains ---
def _read_pipe(pipe, process_name: str, stream: str, log_level: int, sink: LogSink) -> None:
    """Target function for drain threads. Copies each line to the sink and the console."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").rstrip("\r\n")
            if not line:
                continue
            sink.write_line(stream, line)
            proc_logger.log(log_level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} {stream} exited: {e}")
    finally:
        pipe.close()
        sink.close()


def start_drains(process: subprocess.Popen, process_name: str, sink: LogSink) -> List[threading.Thread]:
    """
    Starts one daemon thread per captured stream of `process`.

    Each thread owns a duplicate of `sink` and closes it when its stream ends,
    which happens when the child exits or is killed.

    :param process: The `subprocess.Popen` object to drain.
    :param process_name: The logical name of the process for logging context.
    :param sink: The shared log sink; it is duplicated, never handed out directly.
    :return list: The started threads.
    """
    threads = []
    for pipe, stream, level in (
        (process.stdout, STDOUT, logging.INFO),
        (process.stderr, STDERR, logging.ERROR),
    ):
        if pipe is None:
            continue
        thread = threading.Thread(
            target=_read_pipe,
            args=(pipe, process_name, stream, level, sink.duplicate()),
            daemon=True,
            name=f"{process_name}-{stream.lower()}-drain",
        )
        thread.start()
        threads.append(thread)
    return threads
