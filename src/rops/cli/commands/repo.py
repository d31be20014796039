"""Repository inspection commands: branch and image info, chart targets."""

from typing import Annotated

import typer

from rops.deployment import select_environment
from rops.deployment.tags import resolve_tag
from rops.errors import ConfigurationError, VersionRequired

from ..context import get_cli_context
from ..shared import with_error_handling


@with_error_handling
def info(
    ctx: typer.Context,
    version: Annotated[
        str | None,
        typer.Option("--version", help="Version used to resolve semver image tags"),
    ] = None,
) -> None:
    """Print the current branch, commit and the images it would publish."""
    context = get_cli_context(ctx)
    settings = context.load_settings()
    ref = context.shell_commands(settings).git.ref(settings.git.default_branch)

    environment = select_environment(ref, settings)
    images: dict[str, str | None] = {}
    if environment is not None:
        for image in environment.image_targets:
            try:
                tag = resolve_tag(image, ref, version)
            except VersionRequired:
                images[image.repository] = None
                continue
            images[image.repository] = settings.image_reference(image.repository, tag)

    context.console.print_json(
        {
            "branch": ref.branch_name,
            "default_branch": ref.is_default,
            "sha": ref.sha,
            "short_sha": ref.short_sha,
            "environment": environment.name if environment else None,
            "images": images,
            "architectures": list(settings.docker.architectures),
        }
    )


@with_error_handling
def charts(
    ctx: typer.Context,
    environment: Annotated[
        str | None,
        typer.Option("--environment", "-e", help="Only list this environment"),
    ] = None,
) -> None:
    """Print the chart targets of each environment as JSON."""
    context = get_cli_context(ctx)
    settings = context.load_settings()

    names = sorted(settings.environments)
    if environment is not None:
        if environment not in settings.environments:
            raise ConfigurationError(
                f"Environment '{environment}' not found in configuration",
                details=f"Available environments: {', '.join(names) or 'none'}",
            )
        names = [environment]

    context.console.print_json(
        {
            name: [
                chart.model_dump(mode="json", by_alias=True)
                for chart in settings.environments[name].chart_targets
            ]
            for name in names
        }
    )
