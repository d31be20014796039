"""Self-update from GitHub releases."""

from typing import Annotated

import typer

from rops import __version__
from rops.deployment import Orchestrator, RunState
from rops.release import (
    GitHubReleaseSource,
    InstalledVersion,
    SelfUpdater,
    detect_platform,
    resolve_executable_path,
)

from ..context import get_cli_context
from ..shared import cancel_on_signals, with_error_handling


@with_error_handling
def self_update(
    ctx: typer.Context,
    check: Annotated[
        bool,
        typer.Option("--check", help="Only report whether a newer release exists"),
    ] = False,
    tag: Annotated[
        str | None,
        typer.Option("--tag", help="Install this release tag instead of the latest"),
    ] = None,
) -> None:
    """Replace this executable with the latest (or a given) release."""
    context = get_cli_context(ctx)
    settings = context.settings_or_defaults()
    config = settings.self_update
    host = detect_platform()
    installed = InstalledVersion(
        version=__version__,
        executable_path=resolve_executable_path(config.executable_path),
    )

    with GitHubReleaseSource(
        config.repository, token=context.runtime.token, timeout=config.timeout
    ) as source:
        updater = SelfUpdater(source, installed, host, asset_template=config.asset_template)
        orchestrator = Orchestrator(settings, context.shell_commands(settings), host=host)
        with cancel_on_signals(orchestrator.cancel):
            report = orchestrator.update(updater, check_only=check, tag=tag)

    if report.error is not None:
        context.console.handle_error(
            report.error.message, report.error.details, exit_code=report.exit_code
        )
    if report.state is RunState.ABORTED:
        context.console.warn("Self-update cancelled")
        raise typer.Exit(report.exit_code)
    if report.release is None:
        context.console.ok(f"rops {installed.version} is up to date")
    elif check:
        context.console.info(
            f"rops {report.release.version} is available (installed {installed.version}); "
            "run 'rops self-update' to install it"
        )
    else:
        context.console.ok(
            f"Updated to {report.release.tag}: update staged, effective on next run"
        )
