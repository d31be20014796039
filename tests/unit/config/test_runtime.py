"""Unit tests for the read-once runtime environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from rops.config.runtime import (
    RuntimeEnvironment,
    load_runtime_environment,
    mask_secret,
)


class TestMaskSecret:
    def test_keeps_first_three_characters(self) -> None:
        assert mask_secret("ghp_abcdef123") == "ghp***"

    def test_short_secret_fully_masked(self) -> None:
        assert mask_secret("abc") == "***"


class TestRuntimeEnvironment:
    """Tests for building RuntimeEnvironment from a mapping."""

    def test_defaults(self) -> None:
        runtime = RuntimeEnvironment.from_environ({})

        assert runtime.config_path == Path("rops.toml")
        assert runtime.token is None
        assert runtime.log_level == "INFO"

    def test_reads_known_variables(self) -> None:
        runtime = RuntimeEnvironment.from_environ(
            {
                "ROPS_CONFIG": "/etc/rops.toml",
                "GITHUB_TOKEN": "ghp_secret",
                "ROPS_LOG_LEVEL": "debug",
            }
        )

        assert runtime.config_path == Path("/etc/rops.toml")
        assert runtime.token == "ghp_secret"
        assert runtime.log_level == "DEBUG"

    def test_empty_token_is_none(self) -> None:
        assert RuntimeEnvironment.from_environ({"GITHUB_TOKEN": ""}).token is None

    def test_dump_masks_token(self) -> None:
        runtime = RuntimeEnvironment.from_environ({"GITHUB_TOKEN": "ghp_secret"})

        dumped = runtime.model_dump(mode="json")

        assert dumped["github_token"] == "ghp***"
        assert "ghp_secret" not in repr(runtime)

    def test_is_frozen(self) -> None:
        runtime = RuntimeEnvironment.from_environ({})
        with pytest.raises(ValueError):
            runtime.log_level = "DEBUG"  # type: ignore[misc]


class TestLoadRuntimeEnvironment:
    def test_real_environment_wins_over_dotenv(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Variables already set are not overridden by .env."""
        dotenv = tmp_path / ".env"
        dotenv.write_text("ROPS_LOG_LEVEL=error\n")
        monkeypatch.setenv("ROPS_LOG_LEVEL", "warning")

        runtime = load_runtime_environment(dotenv)

        assert runtime.log_level == "WARNING"
