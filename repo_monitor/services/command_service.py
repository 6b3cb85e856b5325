"""
Local command execution across the clones of the configured repositories.

Commands are run exactly as entered, through the user's login shell so that
their PATH and tool setup apply. This is a deliberately privileged escape
hatch for a tool that only listens locally; nothing is sanitized.
"""

import asyncio
import os
from datetime import date, timedelta
from typing import AsyncIterator, Dict, List, Optional

import structlog

from ..config import RepoRef, settings
from ..models.command_models import (
    CommandEvent, CommandProgress, CommandResult, CommandResultEvent, GitInfo
)

logger = structlog.get_logger(__name__)

ACTIVE_BRANCH_DAYS = 30
BRANCH_DATES_COMMAND = "git for-each-ref --format='%(committerdate:short)' refs/heads"


def count_active_branches(commit_dates: List[str], today: date) -> int:
    """Branches whose last commit (YYYY-MM-DD) is newer than the activity window."""
    cutoff = (today - timedelta(days=ACTIVE_BRANCH_DAYS)).isoformat()
    return sum(1 for value in commit_dates if value > cutoff)


class CommandHistory:
    """Most recent distinct commands, oldest first."""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.command_history_size
        self._entries: List[str] = []

    def add(self, command: str) -> None:
        command = command.strip()
        if not command:
            return
        entries = [entry for entry in self._entries if entry != command]
        entries.append(command)
        self._entries = entries[-self.max_size:]

    def entries(self) -> List[str]:
        return list(self._entries)


class CommandService:
    """Runs shell commands in repository directories."""

    def __init__(self, shell: Optional[str] = None, timeout: Optional[float] = None):
        self.shell = shell or os.environ.get("SHELL") or "/bin/zsh"
        self.timeout = timeout if timeout is not None else settings.command_timeout

    async def execute(self, command: str, cwd: str) -> CommandResult:
        """Run a command through the login shell in ``cwd``."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.shell, "-l", "-c", command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            logger.error("Failed to start command", command=command, cwd=cwd, error=str(e))
            return CommandResult(success=False, error=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("Command timed out", command=command, cwd=cwd, timeout=self.timeout)
            return CommandResult(success=False, error=f"Command timed out after {self.timeout:g}s")

        success = process.returncode == 0
        return CommandResult(
            success=success,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            error=None if success else f"Command failed with exit code {process.returncode}"
        )

    async def _execute_in_repo(self, command: str, base_path: str, ref: RepoRef) -> CommandResult:
        repo_path = os.path.join(base_path, ref.repo)
        if not os.path.isdir(repo_path):
            return CommandResult(success=False, error=f"Directory not found: {repo_path}")
        return await self.execute(command, repo_path)

    async def execute_batch(
        self,
        command: str,
        base_path: str,
        repos: List[RepoRef]
    ) -> Dict[str, CommandResult]:
        """Run a command in every repository directory, one after another."""
        results = {}
        for ref in repos:
            results[ref.key] = await self._execute_in_repo(command, base_path, ref)

        logger.info("Command finished",
                    command=command,
                    repo_count=len(repos),
                    failed_count=sum(1 for result in results.values() if not result.success))
        return results

    async def execute_streaming(
        self,
        command: str,
        base_path: str,
        repos: List[RepoRef]
    ) -> AsyncIterator[CommandEvent]:
        """
        Run a command in every repository directory, yielding events as it goes.

        Each repository produces a ``running`` progress event followed by its
        result, in config order. A final ``complete`` progress event closes
        the stream.
        """
        total = len(repos)
        for current, ref in enumerate(repos, start=1):
            yield CommandProgress(current=current, total=total, repo=ref.key, status="running")
            result = await self._execute_in_repo(command, base_path, ref)
            yield CommandResultEvent(repo=ref.key, result=result)

        yield CommandProgress(current=total, total=total, status="complete")

    async def get_git_info(self, repo_path: str, today: Optional[date] = None) -> GitInfo:
        """Fetch remotes, then report the current branch and branch activity."""
        if not repo_path or not os.path.isdir(repo_path):
            return GitInfo(error="Directory not found")

        await self.execute("git fetch --all --prune", repo_path)

        branch_result = await self.execute("git rev-parse --abbrev-ref HEAD", repo_path)
        current_branch = branch_result.stdout.strip() if branch_result.success else None

        dates_result = await self.execute(BRANCH_DATES_COMMAND, repo_path)
        total_branches = None
        active_branches = None
        if dates_result.success:
            commit_dates = [line.strip() for line in dates_result.stdout.splitlines() if line.strip()]
            total_branches = len(commit_dates)
            active_branches = count_active_branches(commit_dates, today or date.today())

        return GitInfo(
            current_branch=current_branch,
            total_branches=total_branches,
            active_branches=active_branches
        )

    async def get_all_git_info(self, base_path: Optional[str], repos: List[RepoRef]) -> Dict[str, GitInfo]:
        results = {}
        if not base_path:
            return results

        for ref in repos:
            try:
                results[ref.key] = await self.get_git_info(os.path.join(base_path, ref.repo))
            except Exception as e:
                logger.error("Failed to read git info", repository=ref.key, error=str(e))
                results[ref.key] = GitInfo(error=str(e))
        return results
