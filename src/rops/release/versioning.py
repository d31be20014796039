"""Helpers for comparing release versions and ordering releases."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from loguru import logger
from packaging.version import InvalidVersion, Version

from .models import Release

__all__ = [
    "parse_version",
    "compare_versions",
    "is_version_newer",
    "sort_releases",
    "latest_release",
]

_EPOCH = datetime.min.replace(tzinfo=UTC)


def parse_version(value: str) -> Version | None:
    """Parse a tag or version string, ignoring a leading ``v``."""
    try:
        return Version(value.strip().removeprefix("v").removeprefix("V"))
    except InvalidVersion:
        return None


def compare_versions(current_version: str, candidate: str) -> int:
    """Compare ``candidate`` against ``current_version``.

    Returns ``1`` when ``candidate`` is newer, ``-1`` when it is older and ``0``
    when the versions are equivalent.

    Raises:
        ValueError: If either value is not a valid version
    """
    current = parse_version(current_version)
    other = parse_version(candidate)
    if current is None or other is None:
        raise ValueError(f"Cannot compare versions '{current_version}' and '{candidate}'")
    if other == current:
        return 0
    return 1 if other > current else -1


def is_version_newer(current_version: str, candidate: str) -> bool:
    """Return ``True`` if ``candidate`` is strictly newer than ``current_version``."""
    return compare_versions(current_version, candidate) > 0


def _sort_key(release: Release) -> tuple[Version, datetime]:
    version = parse_version(release.tag)
    assert version is not None
    published = release.published_at or _EPOCH
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    return version, published


def sort_releases(releases: Iterable[Release]) -> list[Release]:
    """Order releases newest first.

    Releases are ordered by semantic version, ties broken by publish time.
    Tags that are not valid versions are dropped.
    """
    valid: list[Release] = []
    for release in releases:
        if parse_version(release.tag) is None:
            logger.warning(f"Ignoring release with non-version tag '{release.tag}'")
            continue
        valid.append(release)
    return sorted(valid, key=_sort_key, reverse=True)


def latest_release(releases: Iterable[Release]) -> Release | None:
    """The maximum release under the version/publish-time order."""
    ordered = sort_releases(releases)
    return ordered[0] if ordered else None
