import os
import sys
import logging
from pathlib import Path
from typing import Optional

import yashell.settings as default_settings
from yashell.local.errors import PathUnavailable

log = logging.getLogger(__name__)

DEVELOPMENT = "development"
PACKAGED = "packaged"


def is_frozen() -> bool:
    """True when running from a bundled (PyInstaller-style) executable."""
    return bool(getattr(sys, "frozen", False))


def get_build_mode(configured: Optional[str] = None) -> str:
    """
    Returns the active build mode.

    An explicit 'development' or 'packaged' value wins, otherwise the mode
    follows whether the host itself is running frozen.

    :param configured: The configured build mode, usually settings.BUILD_MODE.
    :return str: Either 'development' or 'packaged'.
    """
    if configured is None:
        configured = default_settings.BUILD_MODE
    if configured in (DEVELOPMENT, PACKAGED):
        return configured
    if configured:
        log.warning(f"Unknown build mode '{configured}'. Falling back to auto-detection.")
    return PACKAGED if is_frozen() else DEVELOPMENT


def _platform_data_root(platform: str) -> Path:
    """Returns the per-user data root for the given platform."""
    home = Path.home()
    if platform == "win32":
        appdata = os.getenv("APPDATA")
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    if platform == "darwin":
        return home / "Library" / "Application Support"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else home / ".local" / "share"


def get_app_data_dir(override: Optional[str] = None, platform: Optional[str] = None) -> Path:
    """
    Returns the writable per-user data directory of the application.

    :param override: An explicit directory that takes precedence over the platform default.
    :param platform: A sys.platform style identifier; defaults to the current platform.
    :return pathlib.Path: The absolute data directory (not created).
    :raises PathUnavailable: If the home directory cannot be determined.
    """
    if override is None:
        override = default_settings.APP_DATA_DIR_OVERRIDE
    if override:
        return Path(override).expanduser().resolve()
    try:
        return _platform_data_root(platform or sys.platform) / default_settings.APP_IDENTIFIER
    except RuntimeError as e:
        raise PathUnavailable(f"Failed to get app data directory: {e}") from e


def get_app_log_dir(data_dir: Optional[Path] = None) -> Path:
    """Returns the directory holding shell.log and server.log."""
    return (data_dir or get_app_data_dir()) / default_settings.LOG_DIR_NAME


def get_resource_dir(override: Optional[str] = None) -> Path:
    """
    Returns the read-only directory of bundled assets.

    Frozen builds use the PyInstaller extraction dir when present, else the
    directory of the executable. Source checkouts use the project root.

    :raises PathUnavailable: If no directory can be derived.
    """
    if override is None:
        override = default_settings.RESOURCE_DIR_OVERRIDE
    if override:
        return Path(override).expanduser().resolve()
    if is_frozen():
        bundle_dir = getattr(sys, "_MEIPASS", None)
        if bundle_dir:
            return Path(bundle_dir)
        if not sys.executable:
            raise PathUnavailable("Failed to get resource directory: executable path is unknown")
        return Path(sys.executable).resolve().parent
    return default_settings.BASE_DIR


def get_working_dir() -> Path:
    """Returns the current working directory used as the app root guess."""
    try:
        return Path.cwd()
    except OSError as e:
        raise PathUnavailable(f"Failed to get current directory: {e}") from e
