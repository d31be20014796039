"""Data types for deployment plans and run results."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from types import MappingProxyType

from rops.config.settings import ChartTarget, EnvironmentConfig, ImageTarget
from rops.errors import ConfigurationError, RopsError
from rops.release.models import InstalledVersion, Release
from rops.shell_commands.types import GitRef


class ActionKind(StrEnum):
    BUILD = "build"
    PUSH = "push"
    MANIFEST = "manifest"
    UPGRADE = "upgrade"


class ActionStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class PlanScope(StrEnum):
    """Which kinds of action a run includes."""

    BUILD = "build"  # build images only
    PUBLISH = "publish"  # build and push images
    DEPLOY = "deploy"  # build, push and upgrade charts


class RunState(StrEnum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    ABORTED = "aborted"


class ExitCode(IntEnum):
    """Process exit codes, distinct per failure class."""

    COMPLETED = 0
    FAILURE = 1
    PARTIALLY_FAILED = 3
    CONFIGURATION_ERROR = 78
    ABORTED = 130


def exit_code_for(state: RunState, error: RopsError | None = None) -> ExitCode:
    """Map a final run state (and the error that ended it) to an exit code."""
    if isinstance(error, ConfigurationError):
        return ExitCode.CONFIGURATION_ERROR
    if error is not None:
        return ExitCode.FAILURE
    if state is RunState.COMPLETED:
        return ExitCode.COMPLETED
    if state is RunState.PARTIALLY_FAILED:
        return ExitCode.PARTIALLY_FAILED
    return ExitCode.ABORTED


@dataclass(frozen=True)
class PlannedAction:
    """One unit of orchestrated work.

    Attributes:
        index: Position in the plan; results are reported in this order
        kind: Build, push, manifest or chart upgrade
        target: The image or chart the action operates on
        depends_on: Indices of actions that must succeed first
        image_ref: Image reference built or pushed, or the manifest name
        extra_tags: Additional references pushed alongside ``image_ref``
        image_values: Helm ``--set`` values resolved to image references
        arch: Architecture of a per-arch build or push (multi-arch images)
        arch_refs: Per-arch image references a manifest combines, by arch
    """

    index: int
    kind: ActionKind
    target: ImageTarget | ChartTarget
    depends_on: tuple[int, ...] = ()
    image_ref: str | None = None
    extra_tags: tuple[str, ...] = ()
    image_values: Mapping[str, str] = field(default_factory=dict)
    arch: str | None = None
    arch_refs: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "image_values", MappingProxyType(dict(self.image_values)))
        object.__setattr__(self, "arch_refs", MappingProxyType(dict(self.arch_refs)))

    @property
    def target_name(self) -> str:
        if isinstance(self.target, ChartTarget):
            return self.target.release_name
        return self.target.repository

    @property
    def target_id(self) -> str:
        if self.arch:
            return f"{self.kind}:{self.target_name}@{self.arch}"
        return f"{self.kind}:{self.target_name}"


@dataclass(frozen=True)
class Plan:
    """Ordered arena of actions with explicit dependency indices."""

    environment: EnvironmentConfig
    ref: GitRef
    actions: tuple[PlannedAction, ...]
    scope: PlanScope = PlanScope.DEPLOY
    version: str | None = None

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self) -> Iterator[PlannedAction]:
        return iter(self.actions)

    def __getitem__(self, index: int) -> PlannedAction:
        return self.actions[index]

    @property
    def roots(self) -> list[PlannedAction]:
        """Actions with no dependencies (the heads of independent chains)."""
        return [action for action in self.actions if not action.depends_on]

    def validate(self) -> None:
        """Check the ordering invariants independently of how the plan was built.

        - every action's index matches its position
        - dependencies point strictly backwards
        - a push depends on the build of the same image and architecture
        - a manifest depends on the push of every architecture it combines
        - an upgrade depends on the publish (push or manifest) of every image
          it references

        Raises:
            ValueError: If any invariant is violated
        """
        published: dict[str, PlannedAction] = {}
        for position, action in enumerate(self.actions):
            if action.index != position:
                raise ValueError(f"{action.target_id} has index {action.index}, expected {position}")
            for dep in action.depends_on:
                if not 0 <= dep < action.index:
                    raise ValueError(f"{action.target_id} depends on later action {dep}")
            deps = [self.actions[dep] for dep in action.depends_on]

            if action.kind is ActionKind.PUSH:
                if not any(
                    dep.kind is ActionKind.BUILD
                    and dep.target_name == action.target_name
                    and dep.arch == action.arch
                    for dep in deps
                ):
                    raise ValueError(f"{action.target_id} does not depend on its build")
                if action.arch is None:
                    published[action.target_name] = action

            if action.kind is ActionKind.MANIFEST:
                pushed = {
                    dep.arch
                    for dep in deps
                    if dep.kind is ActionKind.PUSH and dep.target_name == action.target_name
                }
                missing = sorted(set(action.arch_refs) - pushed)
                if not action.arch_refs or missing:
                    raise ValueError(
                        f"{action.target_id} does not depend on the push of "
                        f"{', '.join(missing) or 'any architecture'}"
                    )
                published[action.target_name] = action

            if action.kind is ActionKind.UPGRADE:
                assert isinstance(action.target, ChartTarget)
                for repository in action.target.images.values():
                    publisher = published.get(repository)
                    if publisher is None or publisher.index not in action.depends_on:
                        label = publisher.target_id if publisher else f"push:{repository}"
                        raise ValueError(f"{action.target_id} does not depend on {label}")


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one planned action. Never mutated after creation."""

    index: int
    target_id: str
    status: ActionStatus
    detail: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is ActionStatus.SUCCESS


@dataclass(frozen=True)
class RunReport:
    """Final state of a build/deploy run."""

    state: RunState
    results: tuple[OperationResult, ...] = ()
    plan: Plan | None = None
    error: RopsError | None = None

    @property
    def exit_code(self) -> ExitCode:
        return exit_code_for(self.state, self.error)


@dataclass(frozen=True)
class UpdateReport:
    """Outcome of a self-update run.

    ``release`` is the candidate found (None when already up to date);
    ``applied`` is set once the executable has been replaced.
    """

    state: RunState
    installed: InstalledVersion
    release: Release | None = None
    applied: bool = False
    error: RopsError | None = None

    @property
    def exit_code(self) -> ExitCode:
        return exit_code_for(self.state, self.error)
