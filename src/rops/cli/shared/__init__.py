"""Shared utilities for CLI commands."""

from .console import CLIConsole, console, exit_code_for_error, with_error_handling
from .signals import cancel_on_signals

__all__ = [
    "CLIConsole",
    "console",
    "exit_code_for_error",
    "with_error_handling",
    "cancel_on_signals",
]
