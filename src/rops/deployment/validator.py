"""Pre-run validation of a deployment plan.

Checks that everything a plan refers to on disk is present before any
external command runs, such as:
- Dockerfiles and build contexts
- Local chart directories (remote charts must name a known repository)
- Helm values files, which must parse as YAML mappings

All problems are collected and reported together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml
from loguru import logger

from rops.config.settings import ChartTarget, ImageTarget, Settings
from rops.errors import ConfigurationError

from .models import ActionKind, Plan

# Push and manifest actions share their build action's target.
_CHECKED_KINDS = (ActionKind.BUILD, ActionKind.UPGRADE)


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""

    WARNING = "warning"  # Can proceed, but may cause problems
    ERROR = "error"  # Cannot proceed


@dataclass
class ValidationIssue:
    """Represents a detected configuration problem."""

    severity: ValidationSeverity
    target: str
    description: str

    def __str__(self) -> str:
        return f"{self.target}: {self.description}"


@dataclass
class ValidationResult:
    """Result of plan validation."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(i.severity == ValidationSeverity.ERROR for i in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def is_clean(self) -> bool:
        return not self.issues

    def error(self, target: str, description: str) -> None:
        self.issues.append(ValidationIssue(ValidationSeverity.ERROR, target, description))

    def warning(self, target: str, description: str) -> None:
        self.issues.append(ValidationIssue(ValidationSeverity.WARNING, target, description))


class PlanValidator:
    """Validates the files a plan depends on before execution.

    Performs checks for:
    - Missing Dockerfiles or build contexts
    - Chart paths that are neither local nor from a registered repository
    - Missing or malformed values files
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the validator.

        Args:
            settings: Loaded configuration; relative paths resolve against
                      its project root
        """
        self.settings = settings

    def validate(self, plan: Plan) -> ValidationResult:
        """Run all checks against the targets in ``plan``.

        Each target is checked once even if several actions refer to it.
        """
        result = ValidationResult()
        seen: set[tuple[type, str]] = set()

        for action in plan:
            key = (type(action.target), action.target_name)
            if key in seen or action.kind not in _CHECKED_KINDS:
                continue
            seen.add(key)
            if isinstance(action.target, ImageTarget):
                self._check_image(action.target, result)
            elif isinstance(action.target, ChartTarget):
                self._check_chart(action.target, result)

        for issue in result.issues:
            if issue.severity == ValidationSeverity.WARNING:
                logger.warning(str(issue))
        return result

    def ensure_valid(self, plan: Plan) -> None:
        """Validate ``plan`` and raise if it has errors.

        Raises:
            ConfigurationError: Listing every error found
        """
        result = self.validate(plan)
        if result.has_errors:
            errors = result.errors
            raise ConfigurationError(
                f"{len(errors)} configuration problem(s) in environment "
                f"'{plan.environment.name}'",
                details="\n".join(f"- {issue}" for issue in errors),
            )

    def _check_image(self, image: ImageTarget, result: ValidationResult) -> None:
        dockerfile = self.settings.resolve_path(image.dockerfile_path)
        if not dockerfile.is_file():
            result.error(image.repository, f"Dockerfile not found: {dockerfile}")
        context = self.settings.resolve_path(image.context)
        if not context.is_dir():
            result.error(image.repository, f"build context not found: {context}")

    def _check_chart(self, chart: ChartTarget, result: ValidationResult) -> None:
        name = chart.release_name
        local = self.settings.resolve_path(chart.chart_path)
        if local.exists():
            if not (local / "Chart.yaml").is_file() and local.is_dir():
                result.warning(name, f"{local} has no Chart.yaml")
        elif chart.chart_path.startswith("oci://"):
            pass
        elif "/" in chart.chart_path and chart.chart_path.split("/", 1)[0] in chart.helm_repos:
            pass
        else:
            result.error(
                name,
                f"chart '{chart.chart_path}' is not a local path and does not "
                "name a repository listed in helm_repos",
            )

        for values_file in chart.values_files:
            self._check_values_file(name, self.settings.resolve_path(values_file), result)

    def _check_values_file(self, name: str, path: Path, result: ValidationResult) -> None:
        if not path.is_file():
            result.error(name, f"values file not found: {path}")
            return
        try:
            with path.open() as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            result.error(name, f"values file {path} is not valid YAML: {e}")
            return
        if content is not None and not isinstance(content, dict):
            result.error(name, f"values file {path} must contain a mapping")
