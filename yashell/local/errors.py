"""
Exception taxonomy for sidecar supervision.

Every error the supervisor can raise derives from SidecarError. Host commands
convert these into error strings at the boundary, so none of them can take the
host process down.
"""


class SidecarError(Exception):
    """Base class for all sidecar supervision failures."""


class PathUnavailable(SidecarError):
    """A host directory (resource, app data, working dir) could not be determined."""


class InterpreterUnavailable(SidecarError):
    """The interpreter required to run the sidecar entry point is missing."""


class SpawnError(SidecarError):
    """The OS refused to create the sidecar process."""


class KillError(SidecarError):
    """The kill request for a running sidecar failed."""


class ReapError(SidecarError):
    """The non-blocking exit check of the sidecar failed."""
