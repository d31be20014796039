"""Data models for releases of rops itself."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType


@dataclass(frozen=True)
class Release:
    """A published release and its downloadable assets.

    ``asset_urls`` is keyed by lower-cased asset name; the name encodes the
    platform (e.g. ``rops-linux-amd64``).
    """

    tag: str
    asset_urls: Mapping[str, str] = field(default_factory=dict)
    published_at: datetime | None = None
    asset_digests: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_urls", MappingProxyType(dict(self.asset_urls)))
        object.__setattr__(
            self, "asset_digests", MappingProxyType(dict(self.asset_digests))
        )

    @property
    def version(self) -> str:
        """The tag without a leading ``v``."""
        return self.tag.removeprefix("v").removeprefix("V")


@dataclass(frozen=True)
class InstalledVersion:
    """The rops executable currently on disk."""

    version: str
    executable_path: Path
