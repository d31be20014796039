"""Unit tests for host platform detection and asset naming."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from rops.release.platform import HostPlatform, detect_platform, resolve_executable_path


class TestHostPlatform:
    def test_asset_names_try_arch_then_variant(self) -> None:
        host = HostPlatform(os="linux", arch="amd64", arch_variant="x86_64")

        names = host.asset_names("rops-{os}-{arch}", "1.3.0")

        assert names == ["rops-linux-amd64", "rops-linux-x86_64"]

    def test_asset_names_with_version(self) -> None:
        host = HostPlatform(os="darwin", arch="arm64")
        assert host.asset_names("rops-{version}-{os}-{arch}", "1.3.0") == [
            "rops-1.3.0-darwin-arm64"
        ]

    def test_docker_platform_is_linux(self) -> None:
        assert HostPlatform(os="darwin", arch="arm64").docker_platform == "linux/arm64"


class TestDetectPlatform:
    @patch("rops.release.platform.platform.system", return_value="Linux")
    @patch("rops.release.platform.platform.machine", return_value="aarch64")
    def test_normalizes_arch(self, _machine, _system) -> None:
        assert detect_platform() == HostPlatform(os="linux", arch="arm64", arch_variant="aarch64")

    @patch("rops.release.platform.platform.system", return_value="Darwin")
    @patch("rops.release.platform.platform.machine", return_value="arm64")
    def test_no_variant_when_names_agree(self, _machine, _system) -> None:
        assert detect_platform() == HostPlatform(os="darwin", arch="arm64")


class TestResolveExecutablePath:
    def test_override_wins(self, tmp_path: Path) -> None:
        assert resolve_executable_path(tmp_path / "rops") == (tmp_path / "rops").resolve()

    def test_ignores_other_rops_on_path(self, tmp_path: Path) -> None:
        launched = tmp_path / "venv" / "bin" / "rops"
        with (
            patch("rops.release.platform.sys.argv", [str(launched), "self-update"]),
            patch("shutil.which", return_value="/usr/local/bin/rops"),
        ):
            assert resolve_executable_path() == launched.resolve()

    def test_frozen_build_uses_interpreter_binary(self, tmp_path: Path) -> None:
        binary = tmp_path / "rops"
        with (
            patch("rops.release.platform.sys.frozen", True, create=True),
            patch("rops.release.platform.sys.executable", str(binary)),
        ):
            assert resolve_executable_path() == binary.resolve()
