"""Inspection commands: resolved settings and version."""

import typer

from rops import __version__
from rops.release.platform import detect_platform, resolve_executable_path

from ..context import get_cli_context
from ..shared import with_error_handling


@with_error_handling
def settings(ctx: typer.Context) -> None:
    """Print the resolved configuration as JSON (secrets masked)."""
    context = get_cli_context(ctx)
    loaded = context.load_settings()
    context.console.print_json(
        {
            "runtime": context.runtime.model_dump(mode="json"),
            "settings": loaded.model_dump(mode="json"),
        }
    )


@with_error_handling
def version(ctx: typer.Context) -> None:
    """Print the installed version and executable path."""
    context = get_cli_context(ctx)
    loaded = context.settings_or_defaults()
    path = resolve_executable_path(loaded.self_update.executable_path)
    context.console.print(f"rops {__version__} ({detect_platform()})")
    context.console.print(f"[dim]{path}[/dim]")
