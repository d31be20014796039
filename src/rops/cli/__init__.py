"""Main CLI application module.

This module provides the main entry point for the rops CLI. The checked-out
git branch decides which environment is built and deployed.

Commands:
- settings: Print the resolved configuration
- version: Print the installed version
- info: Print the current branch, commit and resolved image references
- charts: Print the chart targets of each environment
- plan: Show the actions a deploy would run
- build: Build (and push) images
- deploy: Build, push and upgrade Helm releases
- self-update: Install the latest release of rops
"""

from typing import Annotated

import typer

from rops.utils.logging import configure_logging

from .commands import deploy as deploy_commands
from .commands import repo as repo_commands
from .commands import self_update as self_update_commands
from .commands import settings as settings_commands
from .context import build_cli_context

# Create the main CLI application
app = typer.Typer(
    help="rops - build, deploy and self-update operations tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def _configure(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    context = build_cli_context()
    configure_logging(context.runtime.log_level, verbose=verbose)
    ctx.obj = context


app.command("settings")(settings_commands.settings)
app.command("version")(settings_commands.version)
app.command("info")(repo_commands.info)
app.command("charts")(repo_commands.charts)
app.command("plan")(deploy_commands.plan)
app.command("build")(deploy_commands.build)
app.command("deploy")(deploy_commands.deploy)
app.command("self-update")(self_update_commands.self_update)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
