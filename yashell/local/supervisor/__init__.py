"""
The Supervisor package.
Manages the lifecycle of the API sidecar process.

This package contains the SidecarSupervisor class and its helper modules,
which together resolve the sidecar location, capture its output into the
log sink, and start, stop and report on the process.
"""
from .supervisor import SidecarSupervisor
from .resolver import ResolvedPath, resolve, resolve_for_host
from .log_sink import LogSink

__all__ = ['SidecarSupervisor', 'ResolvedPath', 'resolve', 'resolve_for_host', 'LogSink']
