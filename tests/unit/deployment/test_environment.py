"""Unit tests for branch to environment selection."""

from __future__ import annotations

import pytest

from rops.config.settings import Settings
from rops.deployment.environment import select_environment
from rops.errors import ConfigurationError
from rops.shell_commands.types import GitRef


class TestSelectEnvironment:
    """Tests for select_environment."""

    def test_default_branch_selects_production(self, settings: Settings, main_ref: GitRef) -> None:
        environment = select_environment(main_ref, settings)

        assert environment is not None
        assert environment.name == "production"

    def test_other_branch_selects_configured_environment(
        self, settings: Settings, feature_ref: GitRef
    ) -> None:
        environment = select_environment(feature_ref, settings)

        assert environment is not None
        assert environment.name == "preview"

    def test_selection_is_deterministic(self, settings: Settings, feature_ref: GitRef) -> None:
        assert select_environment(feature_ref, settings) == select_environment(
            feature_ref, settings
        )

    def test_default_branch_name_comes_from_config(self, make_settings) -> None:
        settings = make_settings(
            git={"default_branch": "trunk"},
            environments={"production": {}, "staging": {}},
            deploy={"other_branches": "staging"},
        )

        trunk = select_environment(GitRef("trunk", True), settings)
        main = select_environment(GitRef("main", False), settings)

        assert trunk is not None and trunk.name == "production"
        assert main is not None and main.name == "staging"

    def test_unset_policy_on_other_branch_is_configuration_error(
        self, make_settings, feature_ref: GitRef
    ) -> None:
        """Non-default branches never fall back to a guessed environment."""
        settings = make_settings(environments={"production": {}})

        with pytest.raises(ConfigurationError) as excinfo:
            select_environment(feature_ref, settings)
        assert "other_branches" in (excinfo.value.details or "")

    def test_skip_policy_returns_none(self, make_settings, feature_ref: GitRef) -> None:
        settings = make_settings(
            environments={"production": {}}, deploy={"other_branches": "skip"}
        )

        assert select_environment(feature_ref, settings) is None

    def test_skip_policy_does_not_affect_default_branch(
        self, make_settings, main_ref: GitRef
    ) -> None:
        settings = make_settings(
            environments={"production": {}}, deploy={"other_branches": "skip"}
        )

        environment = select_environment(main_ref, settings)
        assert environment is not None and environment.name == "production"

    def test_undefined_environment_lists_available(
        self, make_settings, main_ref: GitRef
    ) -> None:
        settings = make_settings(environments={"staging": {}})

        with pytest.raises(ConfigurationError, match="production") as excinfo:
            select_environment(main_ref, settings)
        assert excinfo.value.details == "Available environments: staging"
