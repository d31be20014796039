"""Docker command abstractions.

This module provides commands for building, tagging and pushing images, and
for publishing multi-arch manifest lists.
BuildKit is always enabled for builds.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner

BUILDKIT_ENV = {"DOCKER_BUILDKIT": "1"}


class DockerCommands:
    """Docker-related shell commands.

    Provides operations for:
    - Image builds
    - Image tagging and pushing
    - Manifest lists combining per-architecture images
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Docker commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def build(
        self,
        image_ref: str,
        dockerfile: Path,
        context: Path,
        *,
        platform: str | None = None,
        build_args: Sequence[str] = (),
        timeout: float | None = None,
    ) -> CommandResult:
        """Build an image from a Dockerfile.

        Args:
            image_ref: Reference to tag the built image with
                      (e.g., "ghcr.io/acme/app:abc1234")
            dockerfile: Path to the Dockerfile
            context: Build context directory
            platform: Target platform (e.g., "linux/amd64")
            build_args: ``KEY=VALUE`` build arguments
            timeout: Seconds before the build is terminated

        Returns:
            CommandResult with build status
        """
        cmd = ["docker", "build", "-f", str(dockerfile)]
        if platform:
            cmd.extend(["--platform", platform])
        cmd.extend(["-t", image_ref])
        for arg in build_args:
            cmd.extend(["--build-arg", arg])
        cmd.append(str(context))
        return self._runner.run(cmd, env=BUILDKIT_ENV, timeout=timeout)

    def tag_image(
        self, source_tag: str, target_tag: str, *, timeout: float | None = None
    ) -> CommandResult:
        """Tag a Docker image with a new tag.

        Args:
            source_tag: Existing image tag (e.g., "acme/app:abc1234")
            target_tag: New tag to apply (e.g., "acme/app:latest")

        Returns:
            CommandResult with tagging status
        """
        return self._runner.run(["docker", "tag", source_tag, target_tag], timeout=timeout)

    def push_image(self, image_tag: str, *, timeout: float | None = None) -> CommandResult:
        """Push a Docker image to a remote registry.

        Args:
            image_tag: Full image tag including registry
                      (e.g., "registry.example.com/app:v1")

        Returns:
            CommandResult with push status
        """
        return self._runner.run(["docker", "push", image_tag], timeout=timeout)

    def manifest_create(
        self, manifest_ref: str, image_refs: Sequence[str], *, timeout: float | None = None
    ) -> CommandResult:
        """Create (or replace) a multi-arch manifest list from pushed images.

        Args:
            manifest_ref: Name of the manifest list (e.g., "acme/app:abc1234")
            image_refs: Per-architecture images already in the registry

        Returns:
            CommandResult with creation status
        """
        cmd = ["docker", "manifest", "create", "--amend", manifest_ref, *image_refs]
        return self._runner.run(cmd, timeout=timeout)

    def manifest_annotate(
        self,
        manifest_ref: str,
        image_ref: str,
        *,
        arch: str,
        os: str = "linux",
        timeout: float | None = None,
    ) -> CommandResult:
        """Record the platform of one entry of a manifest list."""
        cmd = [
            "docker",
            "manifest",
            "annotate",
            manifest_ref,
            image_ref,
            "--os",
            os,
            "--arch",
            arch,
        ]
        return self._runner.run(cmd, timeout=timeout)

    def manifest_push(self, manifest_ref: str, *, timeout: float | None = None) -> CommandResult:
        return self._runner.run(["docker", "manifest", "push", manifest_ref], timeout=timeout)
