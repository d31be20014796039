"""Build and deployment commands.

The checked-out branch selects the environment; see ``[deploy]`` in
``rops.toml`` for the branch policy.
"""

from typing import Annotated

import typer

from rops.deployment import Orchestrator, PlanScope, RunState
from rops.deployment.models import RunReport

from ..context import CLIContext, get_cli_context
from ..shared import cancel_on_signals, with_error_handling

VersionOption = Annotated[
    str | None,
    typer.Option(
        "--version",
        help="Version tag for images using the semver tag strategy",
    ),
]


def _run(
    context: CLIContext,
    scope: PlanScope,
    *,
    version: str | None = None,
    max_workers: int | None = None,
    dry_run: bool = False,
) -> RunReport:
    settings = context.load_settings()
    commands = context.shell_commands(settings, dry_run=dry_run)
    orchestrator = Orchestrator(
        settings,
        commands,
        max_workers=max_workers,
        on_result=context.console.print_result,
    )

    with cancel_on_signals(orchestrator.cancel):
        report = orchestrator.run(scope=scope, version=version)

    if report.error is not None:
        context.console.handle_error(
            report.error.message, report.error.details, exit_code=report.exit_code
        )

    context.console.print_summary(report)
    if report.state is RunState.COMPLETED:
        if report.plan is None:
            context.console.info("Branch is configured to skip; nothing to do")
        else:
            context.console.ok(f"{scope.capitalize()} of '{report.plan.environment.name}' completed")
    elif report.state is RunState.PARTIALLY_FAILED:
        context.console.error("Run partially failed; see the summary above")
    else:
        context.console.warn("Run aborted; completed results are shown above")

    if report.exit_code:
        raise typer.Exit(report.exit_code)
    return report


@with_error_handling
def plan(ctx: typer.Context, version: VersionOption = None) -> None:
    """Show the actions a deploy of the current branch would run."""
    context = get_cli_context(ctx)
    settings = context.load_settings()
    orchestrator = Orchestrator(settings, context.shell_commands(settings))

    planned = orchestrator.plan(scope=PlanScope.DEPLOY, version=version)
    if planned is None:
        context.console.info("Branch is configured to skip; nothing to do")
        return
    context.console.print_plan(planned)


@with_error_handling
def build(
    ctx: typer.Context,
    push: Annotated[
        bool,
        typer.Option("--push", help="Push images after building them"),
    ] = False,
    version: VersionOption = None,
) -> None:
    """Build (and optionally push) the images of the selected environment."""
    context = get_cli_context(ctx)
    context.console.print_header("Building images")
    _run(context, PlanScope.PUBLISH if push else PlanScope.BUILD, version=version)


@with_error_handling
def deploy(
    ctx: typer.Context,
    version: VersionOption = None,
    max_workers: Annotated[
        int | None,
        typer.Option(
            "--max-workers",
            min=1,
            help="Maximum actions to run concurrently (default from rops.toml)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Log docker and helm commands without running them"),
    ] = False,
) -> None:
    """Build, push and deploy the environment selected by the current branch."""
    context = get_cli_context(ctx)
    context.console.print_header("Deploying")
    _run(
        context,
        PlanScope.DEPLOY,
        version=version,
        max_workers=max_workers,
        dry_run=dry_run,
    )
