"""Run-level state machine for build, deploy and self-update commands.

The orchestrator is the only place that decides whether a failure aborts a
run or is recorded against a single target:

- configuration errors during planning abort before any external command
- a failed or timed out action marks its dependents skipped while
  independent chains keep running
- operator cancellation stops dispatching, terminates in-flight commands
  and keeps the results gathered so far
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from loguru import logger

from rops.config.settings import Settings
from rops.errors import RateLimited, RopsError, Unreachable
from rops.release.models import Release
from rops.release.platform import HostPlatform, detect_platform
from rops.release.updater import SelfUpdater
from rops.utils.retry import RetryConfig, call_with_retry

from .actions import ActionExecutor
from .environment import select_environment
from .models import (
    ActionStatus,
    OperationResult,
    Plan,
    PlannedAction,
    PlanScope,
    RunReport,
    RunState,
    UpdateReport,
)
from .planner import DeploymentPlanner
from .validator import PlanValidator

if TYPE_CHECKING:
    from rops.shell_commands import ShellCommands

# Seconds between cancellation checks while actions are running.
POLL_INTERVAL = 0.2


class Orchestrator:
    """Drive one operator command through Idle, Planning and Executing.

    Attributes:
        state: Current run state
    """

    def __init__(
        self,
        settings: Settings,
        commands: ShellCommands,
        *,
        host: HostPlatform | None = None,
        max_workers: int | None = None,
        on_result: Callable[[OperationResult], None] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Loaded configuration
            commands: Shell command executor shared by every action
            host: Platform of this machine (detected when omitted)
            max_workers: Upper bound on concurrently running actions
                         (defaults to ``[deploy] max_workers``)
            on_result: Called on the orchestrating thread as each result lands
        """
        self.settings = settings
        self.commands = commands
        self.host = host or detect_platform()
        self.max_workers = max_workers or settings.deploy.max_workers
        self.on_result = on_result
        self.state = RunState.IDLE
        self._cancelled = threading.Event()
        self._planner = DeploymentPlanner(settings)
        self._validator = PlanValidator(settings)
        self._executor = ActionExecutor(commands, settings, self.host)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from a signal handler."""
        self._cancelled.set()

    # =========================================================================
    # Planning
    # =========================================================================

    def plan(
        self, *, scope: PlanScope = PlanScope.DEPLOY, version: str | None = None
    ) -> Plan | None:
        """Resolve the branch, select the environment and build a validated plan.

        Returns:
            The plan, or None when the branch is configured to skip

        Raises:
            ConfigurationError: If any part of planning fails
        """
        self.state = RunState.PLANNING
        ref = self.commands.git.ref(self.settings.git.default_branch)
        logger.info(f"On branch '{ref.branch_name}' at {ref.short_sha or 'no commits'}")

        environment = select_environment(ref, self.settings)
        if environment is None:
            return None

        plan = self._planner.plan(environment, ref, scope=scope, version=version)
        self._validator.ensure_valid(plan)
        return plan

    # =========================================================================
    # Build / deploy
    # =========================================================================

    def run(
        self, *, scope: PlanScope = PlanScope.DEPLOY, version: str | None = None
    ) -> RunReport:
        """Plan and execute a build or deploy run.

        Never raises for failures of the run itself; the returned report
        carries the final state and, for aborted runs, the error.
        """
        try:
            plan = self.plan(scope=scope, version=version)
        except RopsError as e:
            logger.error(f"Planning failed: {e.message}")
            return self._finish(RunReport(state=RunState.ABORTED, error=e))

        if self.cancelled:
            return self._finish(RunReport(state=RunState.ABORTED, plan=plan))
        if plan is None or not plan.actions:
            logger.info("Nothing to do")
            return self._finish(RunReport(state=RunState.COMPLETED, plan=plan))

        results = self.execute(plan)
        if self.cancelled:
            state = RunState.ABORTED
        elif all(result.ok for result in results):
            state = RunState.COMPLETED
        else:
            state = RunState.PARTIALLY_FAILED
        return self._finish(RunReport(state=state, results=results, plan=plan))

    def execute(self, plan: Plan) -> tuple[OperationResult, ...]:
        """Execute ``plan`` and return results ordered by plan index.

        Actions are dispatched in index order once all their dependencies
        have succeeded. The pool is as wide as the number of independent
        chains, capped at ``max_workers``.
        """
        self.state = RunState.EXECUTING
        width = max(1, min(len(plan.roots), self.max_workers))
        logger.info(
            f"Executing {len(plan)} action(s) for '{plan.environment.name}' "
            f"with {width} worker(s)"
        )

        results: dict[int, OperationResult] = {}
        pending: list[PlannedAction] = list(plan.actions)
        running: dict[Future[OperationResult], PlannedAction] = {}
        terminated = False

        with ThreadPoolExecutor(max_workers=width, thread_name_prefix="rops") as pool:
            while pending or running:
                if self.cancelled:
                    if not terminated:
                        logger.warning(
                            f"Cancelled; {len(pending)} action(s) will not run"
                        )
                        pending.clear()
                        self.commands.terminate_all()
                        terminated = True
                else:
                    self._dispatch(plan, pool, width, pending, running, results)

                if not running:
                    if pending:
                        # every dependency precedes its dependant in a validated plan
                        raise RuntimeError(
                            f"No runnable actions left but {len(pending)} pending"
                        )
                    break

                done, _ = wait(running, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: running[f].index):
                    action = running.pop(future)
                    self._record(results, self._collect(action, future))

        return tuple(results[index] for index in sorted(results))

    def _dispatch(
        self,
        plan: Plan,
        pool: ThreadPoolExecutor,
        width: int,
        pending: list[PlannedAction],
        running: dict[Future[OperationResult], PlannedAction],
        results: dict[int, OperationResult],
    ) -> None:
        for action in list(pending):
            blocking = [
                results[dep]
                for dep in action.depends_on
                if dep in results and not results[dep].ok
            ]
            if blocking:
                pending.remove(action)
                reasons = ", ".join(
                    f"dependency {r.target_id} {r.status}" for r in blocking
                )
                self._record(
                    results,
                    OperationResult(
                        index=action.index,
                        target_id=action.target_id,
                        status=ActionStatus.SKIPPED,
                        detail=reasons,
                    ),
                )
                logger.warning(f"Skipping {action.target_id}: {reasons}")
                continue

            if len(running) >= width:
                continue
            if all(dep in results for dep in action.depends_on):
                pending.remove(action)
                running[pool.submit(self._executor.execute, action, plan)] = action

    def _collect(self, action: PlannedAction, future: Future[OperationResult]) -> OperationResult:
        try:
            return future.result()
        except Exception as e:
            logger.exception(f"{action.target_id} raised unexpectedly")
            return OperationResult(
                index=action.index,
                target_id=action.target_id,
                status=ActionStatus.FAILED,
                detail=f"{type(e).__name__}: {e}",
            )

    def _record(self, results: dict[int, OperationResult], result: OperationResult) -> None:
        results[result.index] = result
        if self.on_result is not None:
            self.on_result(result)

    def _finish(self, report: RunReport) -> RunReport:
        self.state = report.state
        logger.info(f"Run finished: {report.state}")
        return report

    # =========================================================================
    # Self-update
    # =========================================================================

    def update(
        self,
        updater: SelfUpdater,
        *,
        check_only: bool = False,
        tag: str | None = None,
    ) -> UpdateReport:
        """Check for and optionally apply a release of rops.

        Release API calls are retried with backoff on ``Unreachable`` and
        ``RateLimited``; replacing the executable is never retried. An
        explicit ``tag`` is applied even if it is older than the installed
        version.
        """
        retry_config = RetryConfig(
            max_attempts=self.settings.self_update.retry_attempts,
            exceptions=(Unreachable, RateLimited),
            sleep=self._cancelled.wait,
        )
        installed = updater.installed

        self.state = RunState.PLANNING
        try:
            release: Release | None
            if tag:
                release = call_with_retry(
                    lambda: updater.fetch(tag), retry_config, description=f"fetch {tag}"
                )
            else:
                release = call_with_retry(
                    updater.check, retry_config, description="release check"
                )
        except RopsError as e:
            self.state = RunState.ABORTED
            if self.cancelled:
                logger.warning("Self-update cancelled during release lookup")
                return UpdateReport(state=self.state, installed=installed)
            logger.error(f"Release lookup failed: {e.message}")
            return UpdateReport(state=self.state, installed=installed, error=e)

        if release is None:
            logger.info(f"rops {installed.version} is up to date")
            self.state = RunState.COMPLETED
            return UpdateReport(state=self.state, installed=installed)
        if check_only:
            logger.info(f"rops {release.version} is available (installed {installed.version})")
            self.state = RunState.COMPLETED
            return UpdateReport(state=self.state, installed=installed, release=release)
        if self.cancelled:
            self.state = RunState.ABORTED
            return UpdateReport(state=self.state, installed=installed, release=release)

        self.state = RunState.EXECUTING
        try:
            updated = updater.apply(release)
        except RopsError as e:
            logger.error(f"Self-update failed: {e.message}")
            self.state = RunState.ABORTED
            return UpdateReport(state=self.state, installed=installed, release=release, error=e)

        self.state = RunState.COMPLETED
        return UpdateReport(state=self.state, installed=updated, release=release, applied=True)
