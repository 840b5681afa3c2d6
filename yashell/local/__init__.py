"""
Local package for the yashell application.

This package provides the merged application configuration through the
effective_settings object, plus the host directory lookups the supervisor
depends on.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
