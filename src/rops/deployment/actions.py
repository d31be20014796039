"""Execution of individual planned actions."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from loguru import logger

from rops.config.settings import ChartTarget, ImageTarget, Settings
from rops.errors import ProcessTimedOut
from rops.release.platform import HostPlatform
from rops.shell_commands.types import CommandResult

from .models import ActionKind, ActionStatus, OperationResult, Plan, PlannedAction

if TYPE_CHECKING:
    from rops.shell_commands import ShellCommands


class ActionExecutor:
    """Runs one planned action and classifies its outcome.

    A non-zero exit or a timeout becomes a FAILED result; neither is raised.
    """

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        host: HostPlatform,
        *,
        timeout: float | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            commands: Shell command executor
            settings: Loaded configuration
            host: Platform used when no build platform is configured
            timeout: Seconds each external command may run
        """
        self.commands = commands
        self.settings = settings
        self.host = host
        self.timeout = timeout if timeout is not None else settings.deploy.timeout

    def execute(self, action: PlannedAction, plan: Plan) -> OperationResult:
        """Run ``action`` and return its result."""
        logger.info(f"Starting {action.target_id}")
        started = time.monotonic()
        try:
            if action.kind is ActionKind.BUILD:
                outcome = self._build(action, plan)
            elif action.kind is ActionKind.PUSH:
                outcome = self._push(action)
            elif action.kind is ActionKind.MANIFEST:
                outcome = self._manifest(action)
            else:
                outcome = self._upgrade(action, plan)
        except ProcessTimedOut as e:
            return self._result(action, ActionStatus.FAILED, e.message, started)

        if not outcome.success:
            detail = f"exit {outcome.returncode}"
            if outcome.output_tail:
                detail = f"{detail}: {outcome.output_tail}"
            return self._result(action, ActionStatus.FAILED, detail, started)
        return self._result(action, ActionStatus.SUCCESS, action.image_ref or "", started)

    def _result(
        self, action: PlannedAction, status: ActionStatus, detail: str, started: float
    ) -> OperationResult:
        duration = time.monotonic() - started
        if status is ActionStatus.SUCCESS:
            logger.info(f"{action.target_id} succeeded in {duration:.1f}s")
        else:
            logger.error(f"{action.target_id} failed: {detail.splitlines()[0] if detail else ''}")
        return OperationResult(
            index=action.index,
            target_id=action.target_id,
            status=status,
            detail=detail,
            duration=duration,
        )

    def _build(self, action: PlannedAction, plan: Plan) -> CommandResult:
        image = action.target
        assert isinstance(image, ImageTarget) and action.image_ref
        docker = self.settings.docker

        build_args = list(image.build_args)
        if docker.git_sha_arg and plan.ref.sha:
            build_args.append(f"{docker.git_sha_arg}={plan.ref.sha}")

        if action.arch:
            platform = f"linux/{action.arch}"
        else:
            platform = image.platform or docker.platform or self.host.docker_platform

        return self.commands.docker.build(
            action.image_ref,
            self.settings.resolve_path(image.dockerfile_path),
            self.settings.resolve_path(image.context),
            platform=platform,
            build_args=build_args,
            timeout=self.timeout,
        )

    def _push(self, action: PlannedAction) -> CommandResult:
        assert action.image_ref
        result = self.commands.docker.push_image(action.image_ref, timeout=self.timeout)
        for extra in action.extra_tags:
            if not result.success:
                break
            result = self.commands.docker.tag_image(
                action.image_ref, extra, timeout=self.timeout
            )
            if result.success:
                result = self.commands.docker.push_image(extra, timeout=self.timeout)
        return result

    def _manifest(self, action: PlannedAction) -> CommandResult:
        """Combine the per-arch pushes under the plain tag and each extra tag."""
        assert action.image_ref and action.arch_refs
        docker = self.commands.docker
        result = CommandResult(success=True)
        for manifest_ref in (action.image_ref, *action.extra_tags):
            result = docker.manifest_create(
                manifest_ref, list(action.arch_refs.values()), timeout=self.timeout
            )
            for arch, arch_ref in action.arch_refs.items():
                if not result.success:
                    return result
                result = docker.manifest_annotate(
                    manifest_ref, arch_ref, arch=arch, timeout=self.timeout
                )
            if not result.success:
                return result
            result = docker.manifest_push(manifest_ref, timeout=self.timeout)
            if not result.success:
                return result
        return result

    def _upgrade(self, action: PlannedAction, plan: Plan) -> CommandResult:
        chart = action.target
        assert isinstance(chart, ChartTarget)

        for name, url in chart.helm_repos.items():
            result = self.commands.helm.repo_add(name, url, timeout=self.timeout)
            if not result.success:
                return result

        chart_ref = chart.chart_path
        local = self.settings.resolve_path(chart.chart_path)
        if local.exists():
            chart_ref = str(local)

        return self.commands.helm.upgrade_install(
            chart.release_name,
            chart_ref,
            chart.namespace or self.settings.deploy.default_namespace,
            value_files=[self.settings.resolve_path(v) for v in chart.values_files],
            set_values={**chart.set_values, **action.image_values},
            wait=chart.wait,
            helm_timeout=chart.timeout,
            kube_context=plan.environment.kube_context,
            timeout=self.timeout,
        )
