"""Process environment captured once at startup.

Components never read ``os.environ`` themselves; the CLI builds a
:class:`RuntimeEnvironment` and passes it (or the values it holds) into
each constructor.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, SecretStr, field_serializer

CONFIG_ENV_VAR = "ROPS_CONFIG"
TOKEN_ENV_VAR = "GITHUB_TOKEN"
LOG_LEVEL_ENV_VAR = "ROPS_LOG_LEVEL"

DEFAULT_CONFIG_PATH = Path("rops.toml")
DEFAULT_LOG_LEVEL = "INFO"


def mask_secret(value: str) -> str:
    """Return a display-safe version of a secret (first 3 chars, then ``***``)."""
    if len(value) <= 3:
        return "***"
    return f"{value[:3]}***"


class RuntimeEnvironment(BaseModel):
    """Read-once view of the environment variables rops understands."""

    model_config = ConfigDict(frozen=True)

    config_path: Path = DEFAULT_CONFIG_PATH
    github_token: SecretStr | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @field_serializer("github_token")
    def _serialize_token(self, token: SecretStr | None) -> str | None:
        if token is None:
            return None
        return mask_secret(token.get_secret_value())

    @property
    def token(self) -> str | None:
        """The raw GitHub token, if one was supplied."""
        if self.github_token is None:
            return None
        return self.github_token.get_secret_value()

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> RuntimeEnvironment:
        """Build from a mapping (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        token = env.get(TOKEN_ENV_VAR) or None
        return cls(
            config_path=Path(env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH),
            github_token=SecretStr(token) if token else None,
            log_level=(env.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper(),
        )


def load_runtime_environment(dotenv_path: Path | None = None) -> RuntimeEnvironment:
    """Load ``.env`` (without overriding real variables) and snapshot the environment."""
    load_dotenv(dotenv_path or Path(".env"), override=False)
    return RuntimeEnvironment.from_environ()
