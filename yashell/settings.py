"""
This module contains the configuration settings for the yaLLMa3 desktop shell.
It defines the sidecar layout, host directories, logging configuration and
the environment contract shared with the API sidecar.
It is used throughout the application to ensure consistent settings and paths.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('true', '1', 't', 'yes', 'y')


#* --- Core Paths ---
PACKAGE_DIR = pathlib.Path(__file__).resolve().parent
BASE_DIR = PACKAGE_DIR.parent  # Project Root

#* --- Product Identity ---
PRODUCT_NAME = "yaLLMa3"
APP_IDENTIFIER = "org.yallma3.studio"
HOST_PROCESS_TITLE = "yaLLMa3 - Desktop Shell"

#* --- Build Configuration ---
# 'development' runs the sidecar from source, 'packaged' runs the bundled copy.
# Empty means: packaged when frozen (PyInstaller), development otherwise.
BUILD_MODE = os.getenv("YASHELL_BUILD_MODE", "").strip().lower()
# 'native' bundles a compiled executable per platform, 'script' bundles the
# JavaScript entry point and runs it through an interpreter. One per build.
SIDECAR_BUNDLE_STRATEGY = os.getenv("YASHELL_BUNDLE_STRATEGY", "native").strip().lower()

#* --- Sidecar Layout ---
SIDECAR_NAME = "yaLLMa3API"
SIDECAR_DIR_NAME = "yaLLMa3API"
SIDECAR_ENTRY_FILE = "index.js"
SIDECAR_INTERPRETER = os.getenv("YASHELL_SIDECAR_INTERPRETER", "node")
SIDECAR_BIN_DIR_NAME = "bin"
SIDECAR_BINARY_STEM = "index"
SIDECAR_NATIVE_TRIPLES = {
    "linux": "x86_64-unknown-linux-gnu",
    "win32": "x86_64-pc-windows-msvc",
    "darwin": "x86_64-apple-darwin",
}
INTERPRETER_PROBE_TIMEOUT = 10  # seconds

#* --- Host Directories ---
# Overrides for the platform defaults computed in yashell.local.paths
APP_DATA_DIR_OVERRIDE = os.getenv("YASHELL_APP_DATA_DIR", "")
RESOURCE_DIR_OVERRIDE = os.getenv("YASHELL_RESOURCE_DIR", "")
LOG_DIR_NAME = "logs"
OVERRIDES_FILE_NAME = "overrides.json"

#* --- Environment Contract ---
LOG_DIR_ENV_VAR = "YA_API_LOG_DIR"
AUTO_START_ENV_VAR = "VITE_SPAWN_CORE"


def sidecar_auto_start() -> bool:
    """Reads VITE_SPAWN_CORE when the host starts. Unset means enabled."""
    return _env_flag(AUTO_START_ENV_VAR, "true")


#* --- Sidecar Log Sink ---
SIDECAR_LOG_FILE_NAME = "server.log"

#* --- Health Check (the sidecar serves GET /health) ---
SIDECAR_HOST = "127.0.0.1"
SIDECAR_PORT = int(os.getenv("SIDECAR_PORT", "3001"))
SIDECAR_HEALTH_PATH = "/health"
HEALTH_CHECK_RETRIES = 10
HEALTH_CHECK_DELAY = 0.5  # seconds
HEALTH_CHECK_REQUEST_TIMEOUT = 2  # seconds

#* --- Host Runtime ---
HOST_WORKER_THREADS = 4

#* --- Logging ---
HOST_LOG_FILE_NAME = "shell.log"
HOST_LOG_MAX_BYTES = 5 * 1024 * 1024
HOST_LOG_BACKUP_COUNT = 3
LOKI_ENABLED = _env_flag("LOKI_ENABLED", "False")
LOKI_URL = os.getenv("LOKI_URL", "http://localhost:3100")
LOKI_ORG_ID = os.getenv("LOKI_ORG_ID", "")

#* --- Application variables ---
VERBOSE_LOGGING = False

#* --- MODIFIABLE SETTINGS (Changeable at runtime via 'config' command) ---
MODIFIABLE_SETTINGS = {
    # Sidecar
    "SIDECAR_AUTO_CLEAR_EXITED", "SIDECAR_PORT",
    # Sink and host logging
    "LOG_SINK_TIMESTAMPS", "LOG_HISTORY_COUNT", "LOG_BUFFER_FLUSH_INTERVAL",
    # Health check
    "HEALTH_CHECK_ON_START", "HEALTH_CHECK_RETRIES",
}

#* --- Default Values for Modifiable Settings ---
# Keep the handle of an exited sidecar until kill/spawn unless enabled.
SIDECAR_AUTO_CLEAR_EXITED = False
LOG_SINK_TIMESTAMPS = False
LOG_HISTORY_COUNT = 50
LOG_BUFFER_FLUSH_INTERVAL = 10
HEALTH_CHECK_ON_START = False
