"""Shared console output for CLI commands.

This module provides the Rich console wrapper used by every command,
including plan and run summary tables and the standard error handler.
"""

from collections.abc import Callable
from functools import wraps

import typer
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel
from rich.table import Table

from rops.deployment.models import (
    ActionStatus,
    ExitCode,
    OperationResult,
    Plan,
    RunReport,
)
from rops.errors import ConfigurationError, RopsError

_STATUS_STYLES = {
    ActionStatus.SUCCESS: "[green]success[/green]",
    ActionStatus.FAILED: "[red]failed[/red]",
    ActionStatus.SKIPPED: "[yellow]skipped[/yellow]",
}


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self) -> None:
        """Initialize the CLI console."""
        self.console = Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def print_json(self, data: object) -> None:
        self.console.print_json(data=data)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"[bold red]{message}[/bold red]")
        if details:
            self.console.print(Panel(details, title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def print_header(self, title: str, style: str = "blue") -> None:
        """Print a styled header panel.

        Args:
            title: Header title text
            style: Border style color
        """
        self.console.print(
            Panel.fit(
                f"[bold {style}]{title}[/bold {style}]",
                border_style=style,
            )
        )

    def print_result(self, result: OperationResult) -> None:
        """Print a one-line progress update as each action finishes."""
        if result.status is ActionStatus.SUCCESS:
            self.ok(f"{result.target_id} ({result.duration:.1f}s)")
        elif result.status is ActionStatus.SKIPPED:
            self.warn(f"{result.target_id} skipped: {result.detail}")
        else:
            first_line = result.detail.splitlines()[0] if result.detail else ""
            self.error(f"{result.target_id} failed: {first_line}")

    def print_plan(self, plan: Plan) -> None:
        """Print the planned actions and their dependencies."""
        table = Table(
            title=f"Plan for '{plan.environment.name}' "
            f"({plan.ref.branch_name}@{plan.ref.short_sha})"
        )
        table.add_column("#", justify="right", style="dim")
        table.add_column("Action", style="cyan")
        table.add_column("Target")
        table.add_column("Depends on", style="dim")
        table.add_column("Image")

        for action in plan:
            image = action.image_ref or ", ".join(action.image_values.values())
            table.add_row(
                str(action.index),
                str(action.kind),
                f"{action.target_name} ({action.arch})" if action.arch else action.target_name,
                ", ".join(str(dep) for dep in action.depends_on) or "-",
                image or "-",
            )
        self.console.print(table)

    def print_summary(self, report: RunReport) -> None:
        """Print every planned action with its final status.

        Actions that never produced a result (cancelled runs) are listed
        as not run.
        """
        if report.plan is None:
            return
        results = {result.index: result for result in report.results}

        table = Table(title=f"Run summary: {report.state}")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Action", style="cyan")
        table.add_column("Status")
        table.add_column("Duration", justify="right")
        table.add_column("Detail", overflow="fold")

        for action in report.plan:
            result = results.get(action.index)
            if result is None:
                table.add_row(str(action.index), action.target_id, "[dim]not run[/dim]", "-", "")
                continue
            table.add_row(
                str(action.index),
                result.target_id,
                _STATUS_STYLES[result.status],
                f"{result.duration:.1f}s" if result.duration else "-",
                result.detail,
            )
        self.console.print(table)


def exit_code_for_error(error: RopsError) -> int:
    """Exit code for an error that ends a command."""
    if isinstance(error, ConfigurationError):
        return ExitCode.CONFIGURATION_ERROR
    return ExitCode.FAILURE


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Catches rops errors and formats them consistently, exiting with the
    code that matches the error family.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except RopsError as e:
            console.handle_error(e.message, e.details, exit_code=exit_code_for_error(e))
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(ExitCode.ABORTED) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
