"""Git command abstractions.

Resolves the checked-out branch and commit of the working repository.
Only local metadata is read; nothing here touches the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from rops.errors import NotARepository

from .types import GitRef

if TYPE_CHECKING:
    from .runner import CommandRunner

GIT_TIMEOUT = 30.0
REMOTE_PREFIXES = ("remotes/origin/", "origin/")


class GitCommands:
    """Git-related shell commands.

    Provides operations for:
    - Work tree detection
    - Current branch resolution (including detached CI checkouts)
    - Commit SHA retrieval
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Git commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def _git(self, *args: str) -> str | None:
        result = self._runner.run(["git", *args], timeout=GIT_TIMEOUT)
        if not result.success:
            return None
        return result.stdout.strip()

    def ensure_repository(self) -> None:
        """Raise NotARepository unless run inside a git work tree."""
        if self._git("rev-parse", "--is-inside-work-tree") != "true":
            raise NotARepository(
                "Not a git repository",
                details=f"rops must run inside a git work tree ({self._runner.project_root})",
            )

    def current_branch(self) -> str:
        """Return the checked-out branch name.

        Uses ``git symbolic-ref --short HEAD``; for detached checkouts (as CI
        systems produce) falls back to the first branch containing HEAD.

        Raises:
            NotARepository: Outside a work tree, or when no branch contains HEAD
        """
        self.ensure_repository()

        branch = self._git("symbolic-ref", "--short", "HEAD")
        if branch:
            return branch

        listing = self._git("branch", "-a", "--contains", "HEAD") or ""
        for line in listing.splitlines():
            candidate = line.strip().lstrip("*").strip()
            if not candidate or candidate.startswith("(") or "->" in candidate:
                # "(HEAD detached at abc1234)", "remotes/origin/HEAD -> origin/main"
                continue
            candidate = candidate.split()[0]
            for prefix in REMOTE_PREFIXES:
                candidate = candidate.removeprefix(prefix)
            if candidate == "HEAD":
                continue
            logger.debug(f"Detached HEAD, using containing branch {candidate}")
            return candidate

        raise NotARepository(
            "Unable to determine the current git branch",
            details="HEAD is detached and no branch contains it.",
        )

    def is_default_branch(self, default_branch_name: str) -> bool:
        """Whether the current branch is ``default_branch_name``."""
        return self.current_branch() == default_branch_name

    def sha(self) -> str:
        """Full SHA of HEAD, or an empty string when there are no commits."""
        self.ensure_repository()
        return self._git("rev-parse", "HEAD") or ""

    def short_sha(self) -> str:
        """Abbreviated (7 char) SHA of HEAD, or an empty string."""
        self.ensure_repository()
        return self._git("rev-parse", "--short=7", "HEAD") or ""

    def ref(self, default_branch: str) -> GitRef:
        """Snapshot the current branch and commit.

        Args:
            default_branch: Configured default branch name

        Returns:
            GitRef for this invocation (never cached)
        """
        branch = self.current_branch()
        return GitRef(
            branch_name=branch,
            is_default=branch == default_branch,
            sha=self.sha(),
            short_sha=self.short_sha(),
        )
