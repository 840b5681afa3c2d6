import os
import time
import logging
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from yashell.local.config import effective_settings as config

if TYPE_CHECKING:
    from .resolver import ResolvedPath

log = logging.getLogger(__name__)

STDOUT = "STDOUT"
STDERR = "STDERR"
SUPERVISOR = "SUPERVISOR"

_OPEN_FLAGS = os.O_WRONLY | os.O_APPEND | os.O_CREAT | getattr(os, "O_BINARY", 0)


class LogSink:
    """
    Append-only destination for the sidecar's output streams.

    The file is opened once per spawn. Each drain gets its own writer through
    `duplicate()`, which dups the descriptor instead of reopening the file.
    Every line goes out in a single `os.write` on an O_APPEND descriptor, so
    lines from concurrent writers never interleave. A short write is logged
    and the rest of that line is dropped.
    """

    def __init__(self, path: Path, fd: int, timestamps: bool = False) -> None:
        self.path = path
        self.timestamps = timestamps
        self._fd: Optional[int] = fd

    @classmethod
    def open(cls, log_dir: Path, file_name: Optional[str] = None,
             timestamps: Optional[bool] = None) -> "LogSink":
        """
        Creates `log_dir` if needed and opens the sink file in append mode.

        :param log_dir: Directory of the sink file.
        :param file_name: Defaults to settings.SIDECAR_LOG_FILE_NAME ('server.log').
        :param timestamps: Prefix each line with a local timestamp. Defaults to LOG_SINK_TIMESTAMPS.
        :return LogSink: The open sink.
        :raises OSError: If the directory or file cannot be created.
        """
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / (file_name or config.SIDECAR_LOG_FILE_NAME)
        fd = os.open(path, _OPEN_FLAGS, 0o644)
        if timestamps is None:
            timestamps = bool(config.LOG_SINK_TIMESTAMPS)
        return cls(path, fd, timestamps)

    @property
    def closed(self) -> bool:
        return self._fd is None

    def duplicate(self) -> "LogSink":
        """Returns an independently owned writer for the same file."""
        if self._fd is None:
            raise ValueError("I/O operation on closed log sink")
        return LogSink(self.path, os.dup(self._fd), self.timestamps)

    def format_line(self, stream: str, text: str) -> bytes:
        text = text.rstrip("\r\n")
        line = f"[{stream}] {text}\n"
        if self.timestamps:
            line = time.strftime("%Y-%m-%d %H:%M:%S ") + line
        return line.encode("utf-8", errors="replace")

    def write_line(self, stream: str, text: str) -> bool:
        """
        Appends one tagged line. Failures are logged and reported, never raised.

        :param stream: The origin tag, e.g. 'STDOUT' or 'STDERR'.
        :param text: The line content without its terminator.
        :return bool: True if the line was written.
        """
        if self._fd is None:
            log.error(f"Dropped {stream} line: log sink '{self.path}' is closed.")
            return False
        data = self.format_line(stream, text)
        try:
            written = os.write(self._fd, data)
        except OSError as e:
            log.error(f"Failed to write {stream} line to '{self.path}': {e}")
            return False
        if written != len(data):
            # The tail is dropped; a second write could interleave with another writer.
            log.error(f"Short write to '{self.path}': {written} of {len(data)} bytes of a {stream} line.")
            return False
        return True

    def write_banner(self, pid: int, resolved: "ResolvedPath") -> bool:
        """Records the startup of a sidecar process."""
        launched_with = f" via {resolved.interpreter}" if resolved.interpreter else ""
        return self.write_line(
            SUPERVISOR,
            f"Started {config.SIDECAR_NAME} (PID {pid}) from {resolved.path}{launched_with}",
        )

    def close(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            os.close(fd)
        except OSError as e:
            log.debug(f"Closing log sink '{self.path}' failed: {e}")

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
