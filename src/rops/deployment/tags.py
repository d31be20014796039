"""Image tag resolution."""

from __future__ import annotations

import re

from rops.config.settings import ImageTarget, TagStrategy
from rops.errors import ConfigurationError, VersionRequired
from rops.release.versioning import parse_version
from rops.shell_commands.types import GitRef

MAX_TAG_LENGTH = 128
_INVALID_TAG_CHARS = re.compile(r"[^a-z0-9_.-]+")
_TAG_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}")


def sanitize_branch(branch: str) -> str:
    """Turn a branch name into a valid Docker tag.

    ``feature/Login-Page`` becomes ``feature-login-page``.
    """
    tag = _INVALID_TAG_CHARS.sub("-", branch.lower())
    tag = re.sub(r"-{2,}", "-", tag).lstrip(".-")
    tag = tag[:MAX_TAG_LENGTH].rstrip(".-")
    return tag or "unknown"


def arch_tag(tag: str, arch: str) -> str:
    """Per-architecture tag pushed for a multi-arch manifest (``abc1234-arm64``).

    The base tag is shortened if needed so the result stays a valid tag.
    """
    suffix = f"-{arch}"
    base = tag[: MAX_TAG_LENGTH - len(suffix)]
    return f"{base}{suffix}"


def resolve_tag(image: ImageTarget, ref: GitRef, version: str | None = None) -> str:
    """Resolve the tag for ``image`` according to its strategy.

    Args:
        image: Image target
        ref: Current branch and commit
        version: Operator-supplied version (semver strategy)

    Raises:
        VersionRequired: Semver strategy without a valid version
        ConfigurationError: Git-sha strategy on a repository with no commits
    """
    if image.tag_strategy is TagStrategy.GIT_SHA:
        if not ref.short_sha:
            raise ConfigurationError(
                f"Cannot tag {image.repository} by commit: HEAD has no commits"
            )
        return ref.short_sha

    if image.tag_strategy is TagStrategy.BRANCH:
        return sanitize_branch(ref.branch_name)

    if not version:
        raise VersionRequired(
            f"{image.repository} is tagged by version",
            details="Pass --version (e.g. --version 1.4.0).",
        )
    version = version.strip()
    if parse_version(version) is None or not _TAG_RE.fullmatch(version):
        raise VersionRequired(f"'{version}' is not a valid version tag")
    return version
