"""Branch to environment selection."""

from __future__ import annotations

from loguru import logger

from rops.config.settings import SKIP_ENVIRONMENT, EnvironmentConfig, Settings
from rops.errors import ConfigurationError
from rops.shell_commands.types import GitRef


def select_environment(ref: GitRef, settings: Settings) -> EnvironmentConfig | None:
    """Select the environment for the checked-out branch.

    The default branch maps to ``[deploy] default_branch_environment``; every
    other branch maps to ``[deploy] other_branches``, which must be set
    explicitly to an environment name or ``"skip"``.

    Returns:
        The environment to build/deploy, or None when the branch is skipped

    Raises:
        ConfigurationError: If no policy covers the branch or the named
                            environment is not defined
    """
    if ref.branch_name == settings.git.default_branch:
        name = settings.deploy.default_branch_environment
    else:
        policy = settings.deploy.other_branches
        if policy is None:
            raise ConfigurationError(
                f"No deployment policy for branch '{ref.branch_name}'",
                details=(
                    f"'{ref.branch_name}' is not the default branch "
                    f"('{settings.git.default_branch}'). Set [deploy] other_branches "
                    'in rops.toml to an environment name or "skip".'
                ),
            )
        if policy == SKIP_ENVIRONMENT:
            logger.info(f"Branch '{ref.branch_name}' is configured to skip deployment")
            return None
        name = policy

    environment = settings.environments.get(name)
    if environment is None:
        available = ", ".join(sorted(settings.environments)) or "none"
        raise ConfigurationError(
            f"Environment '{name}' not found in configuration",
            details=f"Available environments: {available}",
        )
    logger.debug(f"Branch '{ref.branch_name}' selects environment '{name}'")
    return environment
