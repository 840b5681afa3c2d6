import sys
import logging
from pathlib import Path
from typing import Optional
from logging.handlers import RotatingFileHandler

from yashell.local.config import effective_settings as config
from yashell.local.errors import PathUnavailable
from yashell.local.paths import get_app_log_dir
from yashell.log.handler import LokiHandler

MAIN_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


class SubprocessLogFilter(logging.Filter):
    """
    This filter identifies logs coming from the sidecar drains and keeps them
    out of shell.log; they are already persisted in server.log.
    """
    def filter(self, record):
        # The 'proc.' prefix is used by the drains in supervisor/process_utils.py
        return not record.name.startswith('proc.')


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess logs."""

    def __init__(self) -> None:
        super().__init__(MAIN_FORMAT)

    def format(self, record):
        # If the log is from a subprocess, just return the raw message.
        if record.name.startswith('proc.'):
            return record.getMessage()
        return super().format(record)


def get_console_handler() -> Optional[logging.Handler]:
    """Returns the console handler installed by setup_logging, if any."""
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            return handler
    return None


def setup_logging(console_level: int = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """
    Configures the root logger for the application.
    This sets up handlers for console, the rotating shell.log file, and
    optionally Loki, clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param log_dir: Directory of shell.log; defaults to the app log dir.
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (host diagnostics only) ---
    try:
        log_dir = log_dir or get_app_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / config.HOST_LOG_FILE_NAME,
            maxBytes=config.HOST_LOG_MAX_BYTES,
            backupCount=config.HOST_LOG_BACKUP_COUNT,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(MAIN_FORMAT))
        file_handler.addFilter(SubprocessLogFilter())
        root_logger.addHandler(file_handler)
    except (OSError, PathUnavailable) as e:
        root_logger.error(f"Failed to initialize file logging handler: {e}. Logging to file will be disabled.")

    # --- Loki Handler (conditional) ---
    if config.LOKI_ENABLED:
        try:
            loki_handler = LokiHandler(url=config.LOKI_URL, org_id=config.LOKI_ORG_ID or None)
            loki_handler.setLevel(logging.INFO)  # Avoid spamming Loki with DEBUG logs
            loki_handler.setFormatter(logging.Formatter(MAIN_FORMAT))
            root_logger.addHandler(loki_handler)
            root_logger.info(f"Grafana Loki logging handler initialized for {config.LOKI_URL}.")
        except Exception as e:
            root_logger.error(f"Failed to initialize Grafana Loki logging handler: {e}")
