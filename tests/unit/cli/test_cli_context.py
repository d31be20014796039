"""Tests for CLI context dependency injection."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import typer

from rops.cli.context import CLIContext, build_cli_context, get_cli_context
from rops.config.runtime import RuntimeEnvironment
from rops.errors import ConfigurationError


def _context(config_path: Path) -> CLIContext:
    return CLIContext(
        console=Mock(),
        runtime=RuntimeEnvironment(config_path=config_path),
    )


def test_cli_context_is_immutable(tmp_path: Path):
    """Test that CLIContext is frozen/immutable."""
    ctx = _context(tmp_path / "rops.toml")

    with pytest.raises(AttributeError):
        ctx.console = Mock()  # type: ignore[misc]


@patch("rops.cli.context.load_runtime_environment")
def test_build_cli_context_reads_runtime_environment(mock_load_runtime):
    """Test that build_cli_context snapshots the process environment once."""
    runtime = RuntimeEnvironment(config_path=Path("/etc/rops.toml"))
    mock_load_runtime.return_value = runtime

    ctx = build_cli_context()

    assert ctx.console is not None
    assert ctx.runtime is runtime
    mock_load_runtime.assert_called_once_with()


def test_get_cli_context_from_typer_context(tmp_path: Path):
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = _context(tmp_path / "rops.toml")
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    assert get_cli_context(typer_ctx) is mock_ctx_obj


def test_get_cli_context_with_none_falls_back():
    """Test that get_cli_context creates new context when ctx is None."""
    with patch("rops.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        get_cli_context(None)

        mock_build.assert_called_once()


def test_load_settings_requires_file(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        _context(tmp_path / "rops.toml").load_settings()


def test_settings_or_defaults_without_file(tmp_path: Path):
    settings = _context(tmp_path / "rops.toml").settings_or_defaults()
    assert settings.self_update.repository == "quantmind/devops"


def test_settings_or_defaults_with_file(project_dir: Path):
    settings = _context(project_dir / "rops.toml").settings_or_defaults()
    assert set(settings.environments) == {"production", "preview"}


def test_shell_commands_use_settings(settings):
    commands = _context(Path("rops.toml")).shell_commands(settings, dry_run=True)

    assert commands.project_root == settings.project_root
    assert commands.runner.dry_run is True
    assert commands.runner.grace_period == settings.deploy.grace_period
