"""Atomic self-replacement of the rops executable.

This is the only module that writes to the running executable's path.
The new binary is downloaded next to the current one, verified, and moved
into place with a single ``os.replace``; on any failure the current
executable is left untouched.
"""

from __future__ import annotations

import fcntl
import hashlib
import os
import stat
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from rops.errors import AssetMissing, DownloadFailed, RemoteError, ReplaceFailed

from .models import InstalledVersion, Release
from .platform import HostPlatform
from .source import ReleaseSource
from .versioning import is_version_newer, parse_version

# Leading bytes of formats we accept as an executable.
EXECUTABLE_MAGIC = (
    b"\x7fELF",  # ELF
    b"\xfe\xed\xfa\xce",  # Mach-O 32
    b"\xfe\xed\xfa\xcf",  # Mach-O 64
    b"\xce\xfa\xed\xfe",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",  # Mach-O universal
    b"#!",  # script / zipapp
)

# Module files a non-frozen run may resolve to instead of an entry point.
PYTHON_SUFFIXES = (".py", ".pyc")


class SelfUpdater:
    """Check for and apply newer releases of rops.

    Attributes:
        installed: The executable currently on disk
    """

    def __init__(
        self,
        source: ReleaseSource,
        installed: InstalledVersion,
        host: HostPlatform,
        *,
        asset_template: str = "rops-{os}-{arch}",
    ) -> None:
        """Initialize the updater.

        Args:
            source: Where releases come from
            installed: Current version and executable path
            host: Platform used to select the release asset
            asset_template: Asset file name template with ``{os}``,
                            ``{arch}`` and ``{version}`` placeholders
        """
        self._source = source
        self.installed = installed
        self._host = host
        self._asset_template = asset_template

    def check(self) -> Release | None:
        """Return the latest release if strictly newer than the installed one."""
        latest = self._source.get_latest()
        if parse_version(self.installed.version) is None:
            logger.warning(
                f"Installed version '{self.installed.version}' is not a valid version; "
                f"offering {latest.tag}"
            )
            return latest
        if is_version_newer(self.installed.version, latest.version):
            return latest
        return None

    def fetch(self, tag: str) -> Release:
        """Look up a specific release, regardless of version ordering."""
        return self._source.get(tag)

    def resolve_asset(self, release: Release) -> tuple[str, str]:
        """Pick the asset matching this host.

        Returns:
            Tuple of (asset name, download URL)

        Raises:
            AssetMissing: If no asset matches the host platform
        """
        names = self._host.asset_names(self._asset_template, release.version)
        for name in names:
            url = release.asset_urls.get(name)
            if url:
                return name, url
        raise AssetMissing(
            f"Release {release.tag} has no asset for {self._host}",
            details=f"Looked for: {', '.join(names)}\n"
            f"Available: {', '.join(sorted(release.asset_urls)) or 'none'}",
        )

    def apply(self, release: Release) -> InstalledVersion:
        """Download ``release`` and atomically replace the installed executable.

        The running process keeps executing the old code; the new version
        takes effect on the next invocation.

        Raises:
            AssetMissing: If no asset matches the host platform
            DownloadFailed: If the transfer or verification fails
            ReplaceFailed: If the swap cannot complete (the old executable
                           is left in place)
        """
        asset_name, url = self.resolve_asset(release)
        target = self.installed.executable_path
        _ensure_replaceable(target)

        with _exclusive_lock(target.with_name(f".{target.name}.lock")):
            staged = self._stage(target)
            try:
                self._download(url, staged)
                self._verify(staged, release.asset_digests.get(asset_name))
                try:
                    os.replace(staged, target)
                except OSError as e:
                    raise ReplaceFailed(
                        f"Unable to replace {target}", details=str(e)
                    ) from e
            finally:
                staged.unlink(missing_ok=True)

        logger.info(f"Self-update to {release.tag} completed successfully")
        self.installed = InstalledVersion(version=release.version, executable_path=target)
        return self.installed

    def _stage(self, target: Path) -> Path:
        # Same directory as the target so os.replace stays on one filesystem.
        try:
            fd, name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".download"
            )
        except OSError as e:
            raise ReplaceFailed(
                f"Cannot write to {target.parent}", details=str(e)
            ) from e
        os.close(fd)
        return Path(name)

    def _download(self, url: str, staged: Path) -> None:
        try:
            self._source.download(url, staged)
        except RemoteError as e:
            raise DownloadFailed(f"Download failed: {e.message}", details=e.details) from e
        except OSError as e:
            raise DownloadFailed("Download failed", details=str(e)) from e

    def _verify(self, staged: Path, expected_sha256: str | None) -> None:
        size = staged.stat().st_size
        if size == 0:
            raise DownloadFailed("Downloaded asset is empty")

        if expected_sha256:
            actual = _sha256(staged)
            if actual != expected_sha256:
                raise DownloadFailed(
                    "Downloaded asset failed checksum verification",
                    details=f"expected {expected_sha256}\nactual   {actual}",
                )

        with staged.open("rb") as f:
            header = f.read(4)
        if not header.startswith(EXECUTABLE_MAGIC):
            raise DownloadFailed("Downloaded asset is not an executable")

        try:
            os.chmod(staged, 0o755)
        except OSError as e:
            raise DownloadFailed("Unable to mark asset executable", details=str(e)) from e
        if not staged.stat().st_mode & stat.S_IXUSR:
            raise DownloadFailed("Downloaded asset is not executable")
        logger.debug(f"Verified {size} byte asset at {staged}")


def _ensure_replaceable(target: Path) -> None:
    """Refuse to overwrite anything but a standalone executable file."""
    if target.suffix in PYTHON_SUFFIXES or not target.is_file():
        raise ReplaceFailed(
            f"{target} is not a standalone rops executable",
            details="Set [self_update] executable_path in rops.toml to the rops "
            "binary to replace; pip installs are upgraded with pip instead",
        )


@contextmanager
def _exclusive_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive, non-blocking flock on ``lock_path``."""
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o644)
    except OSError as e:
        raise ReplaceFailed(f"Cannot create lock file {lock_path}", details=str(e)) from e
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise ReplaceFailed(
                "Another rops self-update is in progress",
                details=f"Lock held on {lock_path}",
            ) from e
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as source:
        for chunk in iter(lambda: source.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()
