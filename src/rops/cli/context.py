"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass

import click
import typer
from loguru import logger

from rops.cli.shared.console import CLIConsole, console
from rops.config.runtime import RuntimeEnvironment, load_runtime_environment
from rops.config.settings import Settings, load_settings
from rops.shell_commands import ShellCommands


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    runtime: RuntimeEnvironment

    def load_settings(self) -> Settings:
        """Load ``rops.toml`` from the configured path.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        return load_settings(self.runtime.config_path)

    def settings_or_defaults(self) -> Settings:
        """Load ``rops.toml`` if present, otherwise use built-in defaults.

        Used by commands that do not need targets (self-update, version).
        """
        if self.runtime.config_path.is_file():
            return self.load_settings()
        logger.debug(f"No configuration at {self.runtime.config_path}, using defaults")
        return Settings()

    def shell_commands(self, settings: Settings, *, dry_run: bool = False) -> ShellCommands:
        return ShellCommands(
            settings.project_root,
            grace_period=settings.deploy.grace_period,
            dry_run=dry_run,
        )


def build_cli_context() -> CLIContext:
    """Build a fresh CLIContext."""
    return CLIContext(console=console, runtime=load_runtime_environment())


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
