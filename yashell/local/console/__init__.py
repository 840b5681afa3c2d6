"""
This module initializes the console package, exposing key functionalities for command execution,
the interactive prompt, toggling verbose logging, and printing help information.
"""

from .process import execute_command, console_loop
from .handler import toggle_verbose_logging, print_help

__all__ = ["execute_command", "console_loop", "toggle_verbose_logging", "print_help"]
