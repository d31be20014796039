"""Deployment planning and orchestration.

Modules:
- environment: Branch to environment selection
- tags: Image tag resolution
- planner: Ordered, dependency-annotated action plans
- validator: Pre-run checks of files a plan refers to
- actions: Execution of a single planned action
- orchestrator: Run state machine, concurrency and cancellation
"""

from .actions import ActionExecutor
from .environment import select_environment
from .models import (
    ActionKind,
    ActionStatus,
    ExitCode,
    OperationResult,
    Plan,
    PlannedAction,
    PlanScope,
    RunReport,
    RunState,
    UpdateReport,
    exit_code_for,
)
from .orchestrator import Orchestrator
from .planner import DeploymentPlanner
from .tags import resolve_tag, sanitize_branch
from .validator import PlanValidator, ValidationResult

__all__ = [
    "ActionExecutor",
    "select_environment",
    "ActionKind",
    "ActionStatus",
    "ExitCode",
    "OperationResult",
    "Plan",
    "PlannedAction",
    "PlanScope",
    "RunReport",
    "RunState",
    "UpdateReport",
    "exit_code_for",
    "Orchestrator",
    "DeploymentPlanner",
    "resolve_tag",
    "sanitize_branch",
    "PlanValidator",
    "ValidationResult",
]
