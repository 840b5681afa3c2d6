import os
import sys
import socket
import logging
import threading
import requests
from collections import deque
from typing import Any, Deque, Dict, Optional

from yashell.local.config import effective_settings as config


class LokiHandler(logging.Handler):
    """
    A custom logging handler that sends logs to a Grafana Loki instance
    in batches using a background thread.
    """
    def __init__(self, url: str, org_id: Optional[str] = None, batch_size: int = 200,
                 flush_interval: Optional[float] = None):
        """
        Initializes the Loki handler.

        :param url: The base URL of the Loki instance.
        :param org_id: The tenant ID for Loki (e.g., 'X-Scope-OrgID').
        :param batch_size: Flush as soon as this many records are buffered.
        :param flush_interval: Seconds between periodic flushes.
        """
        super().__init__()
        self.url = f"{url.rstrip('/')}/loki/api/v1/push"
        self.org_id = org_id
        self.log_buffer: Deque[Dict[str, Any]] = deque()
        self.buffer_lock = threading.Lock()
        self.flush_interval = flush_interval if flush_interval is not None else config.LOG_BUFFER_FLUSH_INTERVAL
        self.batch_size = batch_size
        self.hostname = os.getenv('COMPUTERNAME') or os.getenv('HOSTNAME') or socket.gethostname()

        self.stop_event = threading.Event()
        self.flush_thread = threading.Thread(target=self._periodic_flush, daemon=True)
        self.flush_thread.name = "LokiFlushThread"
        self.flush_thread.start()

    def _periodic_flush(self) -> None:
        """
        Periodically flushes the log buffer. This runs in a background thread.
        The final flush is called when the handler is closed.
        """
        while not self.stop_event.wait(self.flush_interval):
            self.flush()
        self.flush()

    def build_entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Converts a record into a Loki stream entry."""
        # Sidecar lines arrive on 'proc.<name>' loggers with the raw line as message.
        if record.name.startswith('proc.'):
            msg = record.getMessage()
            logger_name = record.name.split('.', 1)[-1]
            source = "sidecar"
        else:
            msg = self.format(record)
            logger_name = record.name
            source = "shell"

        return {
            "stream": {
                "job": "yashell",
                "source": source,
                "level": record.levelname.lower(),
                "hostname": self.hostname,
                "logger": logger_name,
            },
            "values": [
                [str(int(record.created * 1e9)), msg]
            ]
        }

    def emit(self, record: logging.LogRecord) -> None:
        """
        Adds a record to the internal buffer, flushing when the batch is full.

        :param record: The log record to be processed.
        """
        try:
            log_entry = self.build_entry(record)
            with self.buffer_lock:
                self.log_buffer.append(log_entry)
                if len(self.log_buffer) < self.batch_size:
                    return
                logs_to_send = self._drain_locked()
            self._send(logs_to_send)
        except Exception as e:
            print(f"ERROR: LokiHandler failed to process a log record: {e}", file=sys.stderr)

    def _drain_locked(self) -> list:
        logs_to_send = list(self.log_buffer)
        self.log_buffer.clear()
        return logs_to_send

    def _send(self, logs_to_send: list) -> None:
        """Pushes a batch to Loki. Runs without holding the buffer lock."""
        if not logs_to_send:
            return
        try:
            headers = {'Content-Type': 'application/json'}
            if self.org_id:
                headers['X-Scope-OrgID'] = self.org_id

            response = requests.post(self.url, json={"streams": logs_to_send}, headers=headers, timeout=5)
            # 204 No Content is the success status for Loki push
            if response.status_code != 204:
                print(
                    f"ERROR: Loki returned non-204 status: {response.status_code} - {response.text}",
                    file=sys.stderr,
                )
        except requests.RequestException as e:
            print(f"CRITICAL: Failed to send {len(logs_to_send)} logs to Loki: {e}", file=sys.stderr)

    def flush(self) -> None:
        """Public method to trigger a manual flush of the log buffer in a thread-safe manner."""
        with self.buffer_lock:
            logs_to_send = self._drain_locked()
        self._send(logs_to_send)

    def close(self) -> None:
        """
        Shuts down the handler, ensuring all buffered logs are flushed and threads are joined.
        """
        self.stop_event.set()
        if self.flush_thread.is_alive():
            self.flush_thread.join(timeout=self.flush_interval + 2)
        super().close()
