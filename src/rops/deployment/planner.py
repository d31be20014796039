"""Turn an environment into an ordered, dependency-annotated plan."""

from __future__ import annotations

from typing import Any

from loguru import logger

from rops.config.settings import ChartTarget, EnvironmentConfig, ImageTarget, Settings
from rops.errors import ConfigurationError
from rops.shell_commands.types import GitRef

from .models import ActionKind, Plan, PlannedAction, PlanScope
from .tags import arch_tag, resolve_tag


class DeploymentPlanner:
    """Build a :class:`Plan` for one environment.

    Images come first, each as a build followed by a push. With
    ``[docker] architectures`` set, every architecture gets its own build and
    push of an arch-suffixed tag, followed by a manifest combining them under
    the plain tag. Charts come last and depend on the publish (push or
    manifest) of every image they reference, so a dependency always has a
    lower index than its dependents.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def plan(
        self,
        environment: EnvironmentConfig,
        ref: GitRef,
        *,
        scope: PlanScope = PlanScope.DEPLOY,
        version: str | None = None,
    ) -> Plan:
        """Plan the actions for ``environment`` at ``ref``.

        Raises:
            ConfigurationError: If a chart references an unknown image or a
                                tag cannot be resolved
        """
        actions: list[PlannedAction] = []
        image_refs: dict[str, str] = {}
        publish_index: dict[str, int] = {}

        tag_latest = self.settings.docker.tag_latest and ref.is_default
        architectures = self.settings.docker.architectures

        for image in environment.image_targets:
            tag = resolve_tag(image, ref, version)
            image_ref = self.settings.image_reference(image.repository, tag)
            image_refs[image.repository] = image_ref

            extra_tags: tuple[str, ...] = ()
            if tag_latest and tag != "latest":
                extra_tags = (self.settings.image_reference(image.repository, "latest"),)

            if not architectures:
                build = self._add(actions, ActionKind.BUILD, image, image_ref=image_ref)
                if scope is not PlanScope.BUILD:
                    push = self._add(
                        actions,
                        ActionKind.PUSH,
                        image,
                        depends_on=(build.index,),
                        image_ref=image_ref,
                        extra_tags=extra_tags,
                    )
                    publish_index[image.repository] = push.index
                continue

            arch_refs: dict[str, str] = {}
            pushes: list[int] = []
            for arch in architectures:
                arch_ref = self.settings.image_reference(image.repository, arch_tag(tag, arch))
                arch_refs[arch] = arch_ref
                build = self._add(
                    actions, ActionKind.BUILD, image, image_ref=arch_ref, arch=arch
                )
                if scope is not PlanScope.BUILD:
                    push = self._add(
                        actions,
                        ActionKind.PUSH,
                        image,
                        depends_on=(build.index,),
                        image_ref=arch_ref,
                        arch=arch,
                    )
                    pushes.append(push.index)

            if scope is not PlanScope.BUILD:
                manifest = self._add(
                    actions,
                    ActionKind.MANIFEST,
                    image,
                    depends_on=tuple(pushes),
                    image_ref=image_ref,
                    extra_tags=extra_tags,
                    arch_refs=arch_refs,
                )
                publish_index[image.repository] = manifest.index

        if scope is PlanScope.DEPLOY:
            for chart in environment.chart_targets:
                depends_on: list[int] = []
                image_values: dict[str, str] = {}
                for value_path, repository in chart.images.items():
                    if repository not in publish_index:
                        raise ConfigurationError(
                            f"Chart '{chart.release_name}' references unknown image "
                            f"'{repository}'",
                            details=f"Environment '{environment.name}' defines: "
                            f"{', '.join(image_refs) or 'no images'}",
                        )
                    if publish_index[repository] not in depends_on:
                        depends_on.append(publish_index[repository])
                    image_values[value_path] = image_refs[repository]

                self._add(
                    actions,
                    ActionKind.UPGRADE,
                    chart,
                    depends_on=tuple(sorted(depends_on)),
                    image_values=image_values,
                )

        plan = Plan(
            environment=environment,
            ref=ref,
            actions=tuple(actions),
            scope=scope,
            version=version,
        )
        plan.validate()
        logger.debug(
            f"Planned {len(plan)} action(s) for '{environment.name}' "
            f"({scope}, {ref.branch_name}@{ref.short_sha})"
        )
        return plan

    @staticmethod
    def _add(
        actions: list[PlannedAction],
        kind: ActionKind,
        target: ImageTarget | ChartTarget,
        **fields: Any,
    ) -> PlannedAction:
        action = PlannedAction(index=len(actions), kind=kind, target=target, **fields)
        actions.append(action)
        return action
