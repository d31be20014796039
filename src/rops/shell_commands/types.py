"""Data types for shell command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["CommandResult", "GitRef"]


@dataclass(frozen=True)
class CommandResult:
    """Result of a command execution.

    A non-zero ``returncode`` is reported here, never raised; callers decide
    what a failure means for their target.
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output_tail(self) -> str:
        """Last few lines of stderr (or stdout), for run summaries."""
        text = (self.stderr or self.stdout).strip()
        return "\n".join(text.splitlines()[-5:])


@dataclass(frozen=True)
class GitRef:
    """The checked-out branch of the working repository.

    Attributes:
        branch_name: Current branch
        is_default: Whether it is the configured default branch
        sha: Full commit SHA of HEAD
        short_sha: Abbreviated commit SHA (7 chars)
    """

    branch_name: str
    is_default: bool
    sha: str = ""
    short_sha: str = ""
