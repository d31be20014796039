"""Releases of rops itself: discovery on GitHub and atomic self-update."""

from .models import InstalledVersion, Release
from .platform import HostPlatform, detect_platform, resolve_executable_path
from .source import GitHubReleaseSource, ReleaseSource
from .updater import SelfUpdater
from .versioning import compare_versions, is_version_newer, latest_release, sort_releases

__all__ = [
    "InstalledVersion",
    "Release",
    "HostPlatform",
    "detect_platform",
    "resolve_executable_path",
    "GitHubReleaseSource",
    "ReleaseSource",
    "SelfUpdater",
    "compare_versions",
    "is_version_newer",
    "latest_release",
    "sort_releases",
]
