"""Host platform detection and asset naming."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass
from pathlib import Path

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


@dataclass(frozen=True)
class HostPlatform:
    """Operating system and CPU architecture of the running host.

    ``arch`` uses Docker naming (``amd64``, ``arm64``); ``arch_variant`` keeps
    the kernel's name (``x86_64``, ``aarch64``) when it differs, since
    release assets use either convention.
    """

    os: str
    arch: str
    arch_variant: str | None = None

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"

    @property
    def docker_platform(self) -> str:
        """Platform passed to ``docker build`` (images are always linux)."""
        return f"linux/{self.arch}"

    def asset_names(self, template: str, version: str) -> list[str]:
        """Candidate asset file names for this host, most specific first."""
        names: list[str] = []
        for arch in (self.arch, self.arch_variant):
            if not arch:
                continue
            name = (
                template.replace("{version}", version)
                .replace("{os}", self.os)
                .replace("{arch}", arch)
                .lower()
            )
            if name not in names:
                names.append(name)
        return names


def detect_platform() -> HostPlatform:
    """Detect the host OS and architecture."""
    machine = platform.machine().lower()
    arch = _ARCH_ALIASES.get(machine, machine)
    variant = machine if machine and machine != arch else None
    return HostPlatform(os=platform.system().lower(), arch=arch, arch_variant=variant)


def resolve_executable_path(override: Path | None = None) -> Path:
    """Path of the rops executable that a self-update replaces.

    Frozen builds replace the interpreter binary itself; otherwise the
    script this process was launched from is used; ``PATH`` is not
    consulted. ``SelfUpdater.apply`` refuses targets that are not a
    standalone executable (such as ``__main__.py`` under ``python -m rops``).
    """
    if override is not None:
        return override.expanduser().resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()
