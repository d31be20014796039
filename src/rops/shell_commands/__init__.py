"""Shell command abstractions for build and deployment operations.

This package wraps every external tool rops drives, one module per tool:

- docker: Image build, tag and push
- helm: Helm release management
- git: Branch and commit resolution
- runner: Process execution with timeouts and cancellation

Commands return :class:`CommandResult` and never raise on a non-zero exit;
timeouts raise :class:`rops.errors.ProcessTimedOut`.

Usage:
    from rops.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    branch = commands.git.current_branch()
"""

from pathlib import Path

from .docker import DockerCommands
from .git import GitCommands
from .helm import HelmCommands
from .runner import CommandRunner
from .types import CommandResult, GitRef


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        docker: Docker-related commands
        helm: Helm-related commands
        git: Git repository commands
        runner: The shared command runner

    Example:
        >>> commands = ShellCommands(Path("."))
        >>> ref = commands.git.ref("main")
        >>> commands.docker.push_image(f"acme/app:{ref.short_sha}")
    """

    def __init__(
        self,
        project_root: Path,
        *,
        grace_period: float = 10.0,
        dry_run: bool = False,
    ) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            grace_period: Seconds terminated commands get before being killed
            dry_run: Log docker/helm commands instead of running them
        """
        self._project_root = Path(project_root)
        self.runner = CommandRunner(
            self._project_root, grace_period=grace_period, dry_run=dry_run
        )
        # git only reads local metadata, so it always runs for real
        self._git_runner = CommandRunner(self._project_root, grace_period=grace_period)

        self.docker = DockerCommands(self.runner)
        self.helm = HelmCommands(self.runner)
        self.git = GitCommands(self._git_runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root

    def terminate_all(self) -> None:
        """Terminate every in-flight external command."""
        self.runner.terminate_all()


__all__ = [
    "ShellCommands",
    "CommandResult",
    "GitRef",
    "DockerCommands",
    "HelmCommands",
    "GitCommands",
    "CommandRunner",
]
