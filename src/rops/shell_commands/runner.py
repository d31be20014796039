"""Command runner for executing external tools.

All specialized command modules (Docker, Helm, git) execute through a single
:class:`CommandRunner`, which enforces timeouts and can terminate every
in-flight child when a run is cancelled.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from rops.errors import ProcessTimedOut

from .types import CommandResult

# Exit code reported for commands refused after cancellation.
CANCELLED_RETURNCODE = 130


class CommandRunner:
    """Low-level command executor with consistent result handling.

    Children are started in their own session so an operator interrupt
    reaches rops first; rops then terminates them with a grace period.
    """

    def __init__(
        self,
        project_root: Path,
        *,
        grace_period: float = 10.0,
        dry_run: bool = False,
    ) -> None:
        """Initialize the command runner.

        Args:
            project_root: Default working directory for commands
            grace_period: Seconds a terminated child gets before it is killed
            dry_run: Log commands instead of executing them
        """
        self.project_root = project_root
        self.grace_period = grace_period
        self.dry_run = dry_run
        self._lock = threading.Lock()
        self._processes: set[subprocess.Popen[str]] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            env: Extra environment variables layered over the current ones
            timeout: Seconds before the child is terminated

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            ProcessTimedOut: If the command exceeds ``timeout``
        """
        argv = list(cmd)
        if self.dry_run:
            logger.info(f"[dry-run] {shlex.join(argv)}")
            return CommandResult(success=True)
        if self._cancelled:
            return CommandResult(
                success=False,
                stderr="cancelled before start",
                returncode=CANCELLED_RETURNCODE,
            )

        logger.debug(f"Running: {shlex.join(argv)}")
        process_env = {**os.environ, **env} if env else None
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd or self.project_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=process_env,
                start_new_session=True,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False, stderr=f"{argv[0]}: command not found", returncode=127
            )

        with self._lock:
            started_late = self._cancelled
            if not started_late:
                self._processes.add(process)
        if started_late:
            # terminate_all ran between the spawn and the registration above
            stdout, stderr = self._stop(process)
            return CommandResult(
                success=False,
                stdout=stdout or "",
                stderr=stderr or "cancelled",
                returncode=CANCELLED_RETURNCODE,
            )
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            stdout, stderr = self._stop(process)
            raise ProcessTimedOut(argv, timeout or 0, stdout or "", stderr or "") from None
        finally:
            with self._lock:
                self._processes.discard(process)

        result = CommandResult(
            success=process.returncode == 0,
            stdout=stdout or "",
            stderr=stderr or "",
            returncode=process.returncode,
        )
        if not result.success:
            logger.debug(f"{argv[0]} exited with {result.returncode}")
        return result

    def terminate_all(self) -> None:
        """Stop accepting commands and terminate every in-flight child.

        Each child receives SIGTERM and is killed if it is still running
        after the grace period.
        """
        with self._lock:
            self._cancelled = True
            processes = list(self._processes)
        if not processes:
            return

        logger.warning(f"Terminating {len(processes)} running command(s)")
        for process in processes:
            if process.poll() is None:
                process.terminate()

        deadline = time.monotonic() + self.grace_period
        for process in processes:
            while process.poll() is None and time.monotonic() < deadline:
                time.sleep(0.1)
            if process.poll() is None:
                logger.warning(f"Killing process {process.pid} after grace period")
                process.kill()

    def _stop(self, process: subprocess.Popen[str]) -> tuple[str, str]:
        process.terminate()
        try:
            return process.communicate(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            process.kill()
            return process.communicate()
