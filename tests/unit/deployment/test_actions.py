"""Unit tests for single-action execution."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from rops.config.settings import Settings
from rops.deployment.actions import ActionExecutor
from rops.deployment.models import ActionStatus, PlanScope
from rops.deployment.planner import DeploymentPlanner
from rops.errors import ProcessTimedOut
from rops.release.platform import HostPlatform
from rops.shell_commands.types import CommandResult, GitRef


class TestActionExecutor:
    """Tests for ActionExecutor.execute."""

    def _plan(self, settings: Settings, ref: GitRef):
        return DeploymentPlanner(settings).plan(settings.environments["production"], ref)

    def test_build_passes_platform_and_git_sha(
        self,
        settings: Settings,
        main_ref: GitRef,
        mock_commands: MagicMock,
        host: HostPlatform,
        project_dir: Path,
    ) -> None:
        plan = self._plan(settings, main_ref)

        result = ActionExecutor(mock_commands, settings, host).execute(plan[0], plan)

        assert result.status is ActionStatus.SUCCESS
        args, kwargs = mock_commands.docker.build.call_args
        assert args == (
            f"ghcr.io/acme/app:{main_ref.short_sha}",
            project_dir.resolve() / "Dockerfile",
            project_dir.resolve() / ".",
        )
        assert kwargs["platform"] == "linux/amd64"
        assert kwargs["build_args"] == [f"GIT_SHA={main_ref.sha}"]
        assert kwargs["timeout"] == 60

    def test_push_also_pushes_latest(
        self, settings: Settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        plan = self._plan(settings, main_ref)

        ActionExecutor(mock_commands, settings, host).execute(plan[1], plan)

        image_ref = f"ghcr.io/acme/app:{main_ref.short_sha}"
        pushed = [c.args[0] for c in mock_commands.docker.push_image.call_args_list]
        assert pushed == [image_ref, "ghcr.io/acme/app:latest"]
        mock_commands.docker.tag_image.assert_called_once_with(
            image_ref, "ghcr.io/acme/app:latest", timeout=60
        )

    def test_upgrade_sets_image_and_context(
        self,
        settings: Settings,
        main_ref: GitRef,
        mock_commands: MagicMock,
        host: HostPlatform,
        project_dir: Path,
    ) -> None:
        plan = self._plan(settings, main_ref)

        ActionExecutor(mock_commands, settings, host).execute(plan[2], plan)

        args, kwargs = mock_commands.helm.upgrade_install.call_args
        assert args == ("app", str(project_dir.resolve() / "charts/app"), "prod")
        assert kwargs["set_values"] == {
            "image.repository": f"ghcr.io/acme/app:{main_ref.short_sha}"
        }
        assert kwargs["value_files"] == [project_dir.resolve() / "values/prod.yaml"]
        assert kwargs["kube_context"] == "prod"
        assert kwargs["wait"] is True

    def test_non_zero_exit_is_failed_with_tail(
        self, settings: Settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        mock_commands.docker.push_image.return_value = CommandResult(
            success=False, stderr="denied: access forbidden", returncode=1
        )
        plan = self._plan(settings, main_ref)

        result = ActionExecutor(mock_commands, settings, host).execute(plan[1], plan)

        assert result.status is ActionStatus.FAILED
        assert result.detail == "exit 1: denied: access forbidden"
        mock_commands.docker.tag_image.assert_not_called()

    def test_timeout_is_failed(
        self, settings: Settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        mock_commands.docker.build.side_effect = ProcessTimedOut(["docker", "build"], 60)
        plan = self._plan(settings, main_ref)

        result = ActionExecutor(mock_commands, settings, host).execute(plan[0], plan)

        assert result.status is ActionStatus.FAILED
        assert "timed out after 60s" in result.detail

    def test_failed_repo_add_stops_upgrade(
        self, make_settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        settings = make_settings(
            environments={
                "production": {
                    "charts": [
                        {
                            "release_name": "redis",
                            "chart_path": "bitnami/redis",
                            "helm_repos": {"bitnami": "https://charts.bitnami.com/bitnami"},
                        }
                    ]
                }
            }
        )
        mock_commands.helm.repo_add.return_value = CommandResult(success=False, returncode=1)
        plan = self._plan(settings, main_ref)

        result = ActionExecutor(mock_commands, settings, host).execute(plan[0], plan)

        assert result.status is ActionStatus.FAILED
        assert result.detail == "exit 1"
        mock_commands.helm.upgrade_install.assert_not_called()

    def test_default_namespace_used_when_chart_has_none(
        self, make_settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        settings = make_settings(
            environments={
                "production": {
                    "charts": [{"release_name": "web", "chart_path": "oci://ghcr.io/acme/web"}]
                }
            }
        )
        plan = self._plan(settings, main_ref)

        ActionExecutor(mock_commands, settings, host).execute(plan[0], plan)

        args, _ = mock_commands.helm.upgrade_install.call_args
        assert args == ("web", "oci://ghcr.io/acme/web", "services")

    def test_multi_arch_build_and_manifest(
        self, make_settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        settings = make_settings(
            docker={"registry": "acme", "tag_latest": True, "architectures": ["amd64", "arm64"]},
            environments={"production": {"images": [{"repository": "app"}]}},
        )
        ok = CommandResult(success=True)
        mock_commands.docker.manifest_create.return_value = ok
        mock_commands.docker.manifest_annotate.return_value = ok
        mock_commands.docker.manifest_push.return_value = ok
        plan = DeploymentPlanner(settings).plan(
            settings.environments["production"], main_ref, scope=PlanScope.PUBLISH
        )
        executor = ActionExecutor(mock_commands, settings, host)

        executor.execute(plan[2], plan)
        result = executor.execute(plan[4], plan)

        assert mock_commands.docker.build.call_args.kwargs["platform"] == "linux/arm64"
        assert result.status is ActionStatus.SUCCESS
        sha = main_ref.short_sha
        arch_refs = [f"acme/app:{sha}-amd64", f"acme/app:{sha}-arm64"]
        assert [c.args for c in mock_commands.docker.manifest_create.call_args_list] == [
            (f"acme/app:{sha}", arch_refs),
            ("acme/app:latest", arch_refs),
        ]
        annotated = [
            (c.args, c.kwargs["arch"])
            for c in mock_commands.docker.manifest_annotate.call_args_list
        ]
        assert annotated[:2] == [
            ((f"acme/app:{sha}", arch_refs[0]), "amd64"),
            ((f"acme/app:{sha}", arch_refs[1]), "arm64"),
        ]
        pushed = [c.args[0] for c in mock_commands.docker.manifest_push.call_args_list]
        assert pushed == [f"acme/app:{sha}", "acme/app:latest"]

    def test_failed_manifest_create_stops_before_push(
        self, make_settings, main_ref: GitRef, mock_commands: MagicMock, host: HostPlatform
    ) -> None:
        settings = make_settings(
            docker={"architectures": ["amd64"]},
            environments={"production": {"images": [{"repository": "app"}]}},
        )
        mock_commands.docker.manifest_create.return_value = CommandResult(
            success=False, stderr="no such manifest", returncode=1
        )
        plan = DeploymentPlanner(settings).plan(
            settings.environments["production"], main_ref, scope=PlanScope.PUBLISH
        )

        result = ActionExecutor(mock_commands, settings, host).execute(plan[2], plan)

        assert result.status is ActionStatus.FAILED
        assert result.detail == "exit 1: no such manifest"
        mock_commands.docker.manifest_annotate.assert_not_called()
        mock_commands.docker.manifest_push.assert_not_called()
