import pytest
import typer

from rops.errors import ConfigurationError, DownloadFailed, NotARepository, RateLimited
from rops.cli.shared.console import with_error_handling


def test_with_error_handling_handles_configuration_error():
    @with_error_handling
    def _command() -> None:
        raise ConfigurationError("Boom", details="extra")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 78


def test_with_error_handling_treats_not_a_repository_as_configuration():
    @with_error_handling
    def _command() -> None:
        raise NotARepository("Not a git repository")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 78


@pytest.mark.parametrize("error", [RateLimited("slow down"), DownloadFailed("empty")])
def test_with_error_handling_other_errors_exit_one(error):
    @with_error_handling
    def _command() -> None:
        raise error

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_handles_keyboard_interrupt():
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_with_error_handling_lets_other_exceptions_through():
    @with_error_handling
    def _command() -> None:
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        _command()
