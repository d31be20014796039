"""Helm command abstractions.

This module provides commands for Helm release management.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release deployment (upgrade --install)
    - Chart repository registration
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def upgrade_install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        value_files: Sequence[Path] = (),
        set_values: Mapping[str, str] | None = None,
        wait: bool = True,
        helm_timeout: str | None = None,
        kube_context: str | None = None,
        create_namespace: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        """Deploy or upgrade a Helm release.

        Uses `helm upgrade --install` to idempotently deploy a chart.
        A non-zero exit (e.g. a failed rollout with ``--wait``) is returned
        in the result for the caller to classify.

        Args:
            release_name: Name for the Helm release (e.g., "app")
            chart: Chart directory or repository reference
            namespace: Kubernetes namespace for deployment
            value_files: values.yaml files, applied in order
            set_values: ``--set`` overrides (e.g., image references)
            wait: Whether to wait for resources to be ready
            helm_timeout: Helm's own ``--timeout`` (e.g., "10m")
            kube_context: kubeconfig context to deploy to
            create_namespace: Whether to create namespace if it doesn't exist
            timeout: Seconds before the helm process is terminated

        Returns:
            CommandResult with deployment status

        Example:
            >>> helm.upgrade_install(
            ...     "app",
            ...     "./charts/app",
            ...     "production",
            ...     value_files=[Path("./values/prod.yaml")],
            ...     set_values={"image.repository": "ghcr.io/acme/app:abc1234"},
            ... )
        """
        cmd = [
            "helm",
            "upgrade",
            "--install",
            release_name,
            chart,
            "--namespace",
            namespace,
        ]

        if create_namespace:
            cmd.append("--create-namespace")
        for vf in value_files:
            cmd.extend(["-f", str(vf)])
        for key, value in (set_values or {}).items():
            cmd.extend(["--set", f"{key}={value}"])
        if wait:
            cmd.append("--wait")
        if helm_timeout:
            cmd.extend(["--timeout", helm_timeout])
        if kube_context:
            cmd.extend(["--kube-context", kube_context])

        return self._runner.run(cmd, timeout=timeout)

    def repo_add(
        self, name: str, url: str, *, timeout: float | None = None
    ) -> CommandResult:
        """Register (or refresh) a chart repository.

        Args:
            name: Local repository name
            url: Repository URL

        Returns:
            CommandResult with status
        """
        return self._runner.run(
            ["helm", "repo", "add", "--force-update", name, url], timeout=timeout
        )
