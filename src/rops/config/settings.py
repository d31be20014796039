"""Configuration model for ``rops.toml``.

The file is parsed with :mod:`tomllib` and validated into Pydantic models.
Target models forbid unknown keys so that typos surface as configuration
errors instead of silently changing what gets deployed.
"""

from __future__ import annotations

import re
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from rops.errors import ConfigurationError

SKIP_ENVIRONMENT = "skip"
# Docker architecture names usable as a tag suffix (amd64, arm64, s390x).
ARCH_RE = re.compile(r"[a-z0-9_]+")


class TagStrategy(StrEnum):
    """How an image tag is derived for a run."""

    GIT_SHA = "git-sha"
    BRANCH = "branch"
    SEMVER = "semver"


class _TargetModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class ImageTarget(_TargetModel):
    """A container image built from a Dockerfile and pushed to a registry."""

    repository: str
    tag_strategy: TagStrategy = TagStrategy.GIT_SHA
    dockerfile_path: Path = Field(default=Path("Dockerfile"), alias="dockerfile")
    context: Path = Path(".")
    build_args: tuple[str, ...] = ()
    platform: str | None = None

    @field_validator("repository")
    @classmethod
    def _validate_repository(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("repository must not be empty")
        if ":" in value.rsplit("/", 1)[-1]:
            raise ValueError(
                f"repository '{value}' must not include a tag; use tag_strategy"
            )
        return value

    @field_validator("build_args")
    @classmethod
    def _validate_build_args(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for arg in value:
            if "=" not in arg:
                raise ValueError(f"build arg '{arg}' must be KEY=VALUE")
        return value


class ChartTarget(_TargetModel):
    """A Helm release deployed with ``helm upgrade --install``.

    ``images`` maps a Helm value path (e.g. ``image.repository``) to the
    repository of an image target in the same environment. The chart depends
    on every image it references and receives the resolved image reference
    through ``--set``.
    """

    release_name: str
    chart_path: str
    namespace: str | None = None
    values_files: tuple[Path, ...] = ()
    images: dict[str, str] = Field(default_factory=dict)
    set_values: dict[str, str] = Field(default_factory=dict, alias="set")
    helm_repos: dict[str, str] = Field(default_factory=dict)
    wait: bool = True
    timeout: str | None = None


class EnvironmentConfig(_TargetModel):
    """Build and deploy targets for one named environment."""

    name: str
    kube_context: str | None = None
    image_targets: tuple[ImageTarget, ...] = Field(default=(), alias="images")
    chart_targets: tuple[ChartTarget, ...] = Field(default=(), alias="charts")

    @model_validator(mode="after")
    def _validate_unique_targets(self) -> EnvironmentConfig:
        repositories = [image.repository for image in self.image_targets]
        duplicates = {r for r in repositories if repositories.count(r) > 1}
        if duplicates:
            raise ValueError(
                f"duplicate image repositories: {', '.join(sorted(duplicates))}"
            )
        releases = [chart.release_name for chart in self.chart_targets]
        duplicates = {r for r in releases if releases.count(r) > 1}
        if duplicates:
            raise ValueError(f"duplicate chart releases: {', '.join(sorted(duplicates))}")
        return self


class GitSettings(BaseModel):
    default_branch: str = "main"


class DockerSettings(BaseModel):
    """Registry naming and build defaults shared by all image targets."""

    registry: str | None = None
    image_prefix: str | None = None
    tag_latest: bool = False
    git_sha_arg: str | None = None
    platform: str | None = None
    # Publish one linux image per architecture under a single manifest.
    architectures: tuple[str, ...] = ()

    @field_validator("registry")
    @classmethod
    def _strip_registry(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().rstrip("/") or None

    @field_validator("architectures")
    @classmethod
    def _validate_architectures(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        seen: list[str] = []
        for arch in value:
            arch = arch.strip().lower()
            if not ARCH_RE.fullmatch(arch):
                raise ValueError(f"invalid architecture '{arch}'")
            if arch in seen:
                raise ValueError(f"duplicate architecture '{arch}'")
            seen.append(arch)
        return tuple(seen)


class DeploySettings(BaseModel):
    """Environment selection policy and execution limits."""

    default_branch_environment: str = "production"
    # Environment name for non-default branches, or "skip". No implicit default.
    other_branches: str | None = None
    default_namespace: str = "services"
    max_workers: int = Field(default=4, ge=1)
    timeout: float = Field(default=1800.0, gt=0)
    grace_period: float = Field(default=10.0, ge=0)


class SelfUpdateSettings(BaseModel):
    repository: str = "quantmind/devops"
    asset_template: str = "rops-{os}-{arch}"
    executable_path: Path | None = None
    timeout: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)


class Settings(BaseModel):
    """Resolved contents of ``rops.toml``."""

    project_root: Path = Path(".")
    git: GitSettings = Field(default_factory=GitSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)
    self_update: SelfUpdateSettings = Field(default_factory=SelfUpdateSettings)
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _name_environments(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("environments"), dict):
            named: dict[str, Any] = {}
            for key, value in data["environments"].items():
                if isinstance(value, dict):
                    value = {"name": key, **value}
                named[key] = value
            data = {**data, "environments": named}
        return data

    def repository_name(self, repository: str) -> str:
        """Apply the configured image prefix to a repository name."""
        prefix = self.docker.image_prefix
        return f"{prefix}-{repository}" if prefix else repository

    def image_reference(self, repository: str, tag: str) -> str:
        """Fully qualified image reference for ``repository`` at ``tag``."""
        name = self.repository_name(repository)
        if self.docker.registry:
            name = f"{self.docker.registry}/{name}"
        return f"{name}:{tag}"

    def resolve_path(self, path: Path | str) -> Path:
        """Resolve a config-relative path against the project root."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.project_root / candidate


def load_settings(config_path: Path) -> Settings:
    """Load and validate ``rops.toml``.

    Relative paths inside the file are resolved against the directory
    containing it.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            details="Create a rops.toml or point ROPS_CONFIG at one.",
        )

    logger.debug(f"Loading configuration from {config_path}")
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {config_path}", details=str(e)
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Unable to read {config_path}", details=str(e)) from e

    data["project_root"] = config_path.resolve().parent
    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}", details=str(e)
        ) from e

    logger.debug(
        f"Loaded {len(settings.environments)} environment(s): "
        f"{', '.join(settings.environments) or 'none'}"
    )
    return settings
