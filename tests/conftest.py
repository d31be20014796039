"""Shared fixtures for rops unit tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from rops.config.settings import Settings, load_settings
from rops.release.platform import HostPlatform
from rops.shell_commands.types import CommandResult, GitRef

SAMPLE_CONFIG = """\
[git]
default_branch = "main"

[docker]
registry = "ghcr.io/acme"
tag_latest = true
git_sha_arg = "GIT_SHA"

[deploy]
default_branch_environment = "production"
other_branches = "preview"
max_workers = 4
timeout = 60
grace_period = 1

[environments.production]
kube_context = "prod"

[[environments.production.images]]
repository = "app"
tag_strategy = "git-sha"
dockerfile = "Dockerfile"

[[environments.production.charts]]
release_name = "app"
chart_path = "charts/app"
namespace = "prod"
values_files = ["values/prod.yaml"]
images = { "image.repository" = "app" }

[environments.preview]

[[environments.preview.images]]
repository = "app"
tag_strategy = "branch"
"""

SHA = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project checkout with a Dockerfile, a local chart and a values file."""
    (tmp_path / "Dockerfile").write_text("FROM scratch\n")
    chart = tmp_path / "charts" / "app"
    chart.mkdir(parents=True)
    (chart / "Chart.yaml").write_text("apiVersion: v2\nname: app\nversion: 0.1.0\n")
    values = tmp_path / "values"
    values.mkdir()
    (values / "prod.yaml").write_text("replicaCount: 2\n")
    (tmp_path / "rops.toml").write_text(SAMPLE_CONFIG)
    return tmp_path


@pytest.fixture
def settings(project_dir: Path) -> Settings:
    """Settings loaded from the sample ``rops.toml``."""
    return load_settings(project_dir / "rops.toml")


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Factory building Settings from keyword sections, rooted at tmp_path."""

    def _make(**data: object) -> Settings:
        return Settings.model_validate({"project_root": tmp_path, **data})

    return _make


@pytest.fixture
def main_ref() -> GitRef:
    return GitRef(branch_name="main", is_default=True, sha=SHA, short_sha=SHA[:7])


@pytest.fixture
def feature_ref() -> GitRef:
    return GitRef(
        branch_name="feature/Login-Page", is_default=False, sha=SHA, short_sha=SHA[:7]
    )


@pytest.fixture
def host() -> HostPlatform:
    return HostPlatform(os="linux", arch="amd64", arch_variant="x86_64")


@pytest.fixture
def mock_commands(main_ref: GitRef) -> MagicMock:
    """Shell commands whose docker and helm calls all succeed."""
    commands = MagicMock()
    commands.git.ref.return_value = main_ref
    ok = CommandResult(success=True)
    commands.docker.build.return_value = ok
    commands.docker.push_image.return_value = ok
    commands.docker.tag_image.return_value = ok
    commands.helm.upgrade_install.return_value = ok
    commands.helm.repo_add.return_value = ok
    return commands
