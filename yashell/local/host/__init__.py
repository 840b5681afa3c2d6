"""
The Host package.
Stands in for the desktop framework the sidecar supervisor is wired into.

It provides the DesktopHost runtime, the named sidecar commands exposed to the
UI, and the SidecarLifecycle hook that ties the sidecar to host startup and
shutdown.
"""
from .app import DesktopHost, SETUP, CLOSE_REQUESTED
from .commands import register_commands
from .lifecycle import SidecarLifecycle

__all__ = ['DesktopHost', 'SETUP', 'CLOSE_REQUESTED', 'register_commands', 'SidecarLifecycle']
