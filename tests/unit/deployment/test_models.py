"""Unit tests for run report exit codes."""

from __future__ import annotations

import pytest

from rops.deployment.models import ExitCode, RunReport, RunState, exit_code_for
from rops.errors import ConfigurationError, DownloadFailed, VersionRequired


@pytest.mark.parametrize(
    ("state", "error", "expected"),
    [
        (RunState.COMPLETED, None, ExitCode.COMPLETED),
        (RunState.PARTIALLY_FAILED, None, ExitCode.PARTIALLY_FAILED),
        (RunState.ABORTED, None, ExitCode.ABORTED),
        (RunState.ABORTED, ConfigurationError("bad"), ExitCode.CONFIGURATION_ERROR),
        (RunState.ABORTED, VersionRequired("missing"), ExitCode.CONFIGURATION_ERROR),
        (RunState.ABORTED, DownloadFailed("empty"), ExitCode.FAILURE),
    ],
)
def test_exit_code_for(state, error, expected) -> None:
    assert exit_code_for(state, error) == expected


def test_exit_codes_are_distinct() -> None:
    """Scripts can tell partial failure, abort and configuration errors apart."""
    codes = [code.value for code in ExitCode]
    assert len(codes) == len(set(codes))


def test_run_report_exit_code() -> None:
    assert RunReport(state=RunState.PARTIALLY_FAILED).exit_code == 3
