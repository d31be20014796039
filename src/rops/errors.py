"""Exception hierarchy for rops.

Components raise these errors; the orchestrator decides whether a failure
aborts the run or is recorded against a single target, and the CLI maps
each family to a distinct exit code.

Families:
- ConfigurationError: invalid or missing configuration, not a git repository.
  Always raised before any external side effect.
- RemoteError: GitHub API failures (rate limited, unreachable, not found).
  Transient ones may be retried by the caller.
- UpdateError: self-update integrity failures. The installed executable
  stays authoritative.
- ProcessTimedOut: an external tool exceeded its timeout.
"""

from __future__ import annotations

from datetime import datetime


class RopsError(Exception):
    """Base class for every error surfaced to the operator."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(RopsError):
    """Raised when configuration is missing or invalid."""


class NotARepository(ConfigurationError):
    """Raised when a command requiring git runs outside a work tree."""


class VersionRequired(ConfigurationError):
    """Raised when a semver-tagged image is planned without a version."""


# =============================================================================
# Remote release API
# =============================================================================


class RemoteError(RopsError):
    """Raised when the remote release API cannot satisfy a request."""


class RateLimited(RemoteError):
    """Raised when the release API reports an exhausted rate limit."""

    def __init__(
        self,
        message: str,
        details: str | None = None,
        *,
        authenticated: bool = False,
        reset_at: datetime | None = None,
    ):
        super().__init__(message, details)
        self.authenticated = authenticated
        self.reset_at = reset_at


class NotFound(RemoteError):
    """Raised when a requested release does not exist."""


class Unreachable(RemoteError):
    """Raised on network failures, timeouts and server errors."""


# =============================================================================
# Self update
# =============================================================================


class UpdateError(RopsError):
    """Raised when a self-update cannot be completed."""


class AssetMissing(UpdateError):
    """Raised when a release has no asset for the host platform."""


class DownloadFailed(UpdateError):
    """Raised when an asset cannot be downloaded or fails verification."""


class ReplaceFailed(UpdateError):
    """Raised when the running executable cannot be replaced."""


# =============================================================================
# External processes
# =============================================================================


class ProcessTimedOut(RopsError):
    """Raised when an external command exceeds its timeout."""

    def __init__(
        self,
        cmd: list[str],
        timeout: float,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(
            f"Command timed out after {timeout:g}s: {' '.join(cmd[:2])}",
            details=stderr or None,
        )
        self.cmd = cmd
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr
