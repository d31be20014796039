"""Configuration: ``rops.toml`` settings and the read-once runtime environment."""

from .runtime import RuntimeEnvironment, load_runtime_environment, mask_secret
from .settings import (
    SKIP_ENVIRONMENT,
    ChartTarget,
    DeploySettings,
    DockerSettings,
    EnvironmentConfig,
    GitSettings,
    ImageTarget,
    SelfUpdateSettings,
    Settings,
    TagStrategy,
    load_settings,
)

__all__ = [
    "RuntimeEnvironment",
    "load_runtime_environment",
    "mask_secret",
    "SKIP_ENVIRONMENT",
    "ChartTarget",
    "DeploySettings",
    "DockerSettings",
    "EnvironmentConfig",
    "GitSettings",
    "ImageTarget",
    "SelfUpdateSettings",
    "Settings",
    "TagStrategy",
    "load_settings",
]
