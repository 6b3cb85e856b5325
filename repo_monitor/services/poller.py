"""
Repository poller: collects status for every configured repository on a timer.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import structlog

from ..config import MonitorConfig
from ..exceptions import GitHubAPIError
from ..models.dashboard_models import StatusSnapshot
from ..models.github_models import (
    CodeFactorGrade, CommitSummary, DependencyDashboard, RepoStatus, WorkflowRun
)
from .dashboard_parser import parse_pending_approvals
from .github_service import GitHubService

logger = structlog.get_logger(__name__)

DASHBOARD_TITLE = "Dependency Dashboard"
ALL_FAILED_ERROR = "Failed to fetch all repositories"

CODE_FACTOR_PATTERN = re.compile(
    r"\[!\[CodeFactor\]\((https://www\.codefactor\.io/[^)]+/badge)\)\]"
    r"\((https://www\.codefactor\.io/[^)]+)\)",
    re.IGNORECASE
)
COVERAGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

GitHubFactory = Callable[[Optional[str]], GitHubService]


def find_dependency_dashboard(
    issues: List[Dict[str, Any]],
    owner: str,
    repo: str
) -> Optional[DependencyDashboard]:
    """Build the dashboard from the first real issue titled like the bot's tracking issue."""
    for issue in issues:
        if issue.get("pull_request") or DASHBOARD_TITLE not in (issue.get("title") or ""):
            continue

        body = issue.get("body") or ""
        return DependencyDashboard(
            owner=owner,
            repo=repo,
            number=issue["number"],
            title=issue["title"],
            url=issue.get("html_url") or "",
            body=body,
            updated_at=issue.get("updated_at"),
            pending_approvals=parse_pending_approvals(body)
        )
    return None


def parse_code_factor_badge(readme: str) -> Optional[CodeFactorGrade]:
    match = CODE_FACTOR_PATTERN.search(readme)
    if not match:
        return None
    return CodeFactorGrade(badge_url=match.group(1), url=match.group(2))


def parse_coverage_percent(message: Optional[str]) -> Optional[float]:
    """Leading number of a badge message such as ``"87.5%"``."""
    if not message:
        return None
    match = COVERAGE_PATTERN.search(message)
    return float(match.group(1)) if match else None


class StatusStore:
    """
    Owner of the latest poll results.

    Rounds never modify the stored snapshot; each completed round replaces
    it, so the last round to finish wins.
    """

    def __init__(self):
        self._snapshot = StatusSnapshot()
        self._in_flight = 0

    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def begin_round(self) -> None:
        self._in_flight += 1
        self._snapshot = self._snapshot.model_copy(update={"loading": True, "error": None})

    def replace(self, repositories: Dict[str, RepoStatus], error: Optional[str] = None) -> StatusSnapshot:
        self._in_flight = max(0, self._in_flight - 1)
        self._snapshot = StatusSnapshot(
            repositories=repositories,
            loading=self._in_flight > 0,
            error=error,
            last_update=datetime.now(timezone.utc)
        )
        return self._snapshot

    def abandon_round(self) -> StatusSnapshot:
        """Close a round that produced no results, keeping the previous ones."""
        self._in_flight = max(0, self._in_flight - 1)
        self._snapshot = self._snapshot.model_copy(update={"loading": self._in_flight > 0})
        return self._snapshot

    def clear(self) -> StatusSnapshot:
        self._snapshot = StatusSnapshot(loading=self._in_flight > 0)
        return self._snapshot


class RepoPoller:
    """Fetches repository status on a timer and on demand."""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        store: Optional[StatusStore] = None,
        github_factory: Optional[GitHubFactory] = None
    ):
        self.config = config or MonitorConfig()
        self.store = store or StatusStore()
        self.github_factory = github_factory or (lambda token: GitHubService(token=token))
        self._timer_task: Optional[asyncio.Task] = None
        self._rounds: Set[asyncio.Task] = set()

    async def _collect_issues(
        self,
        github: GitHubService,
        owner: str,
        repo: str
    ) -> Tuple[Optional[int], Optional[int], Optional[DependencyDashboard]]:
        try:
            issues = await github.list_open_issues(owner, repo)
        except GitHubAPIError as e:
            logger.warning("Issues unavailable", repository=f"{owner}/{repo}", status_code=e.status_code)
            return None, None, None

        real_issues = [issue for issue in issues if not issue.get("pull_request")]
        open_prs = len(issues) - len(real_issues)
        return len(real_issues), open_prs, find_dependency_dashboard(real_issues, owner, repo)

    async def _collect_pages(
        self,
        github: GitHubService,
        owner: str,
        repo: str
    ) -> Tuple[Optional[str], Optional[float]]:
        try:
            repo_data = await github.get_repository(owner, repo)
        except GitHubAPIError as e:
            logger.warning("Repository metadata unavailable",
                           repository=f"{owner}/{repo}",
                           status_code=e.status_code)
            return None, None

        if not repo_data.get("has_pages"):
            return None, None

        pages_url = f"https://{owner.lower()}.github.io/{repo}/"
        coverage = None
        try:
            badge = await github.fetch_coverage_badge(pages_url)
            coverage = parse_coverage_percent(badge.get("message"))
        except Exception as e:
            logger.debug("Coverage badge skipped", repository=f"{owner}/{repo}", error=str(e))
        return pages_url, coverage

    async def _collect_code_factor(
        self,
        github: GitHubService,
        owner: str,
        repo: str
    ) -> Optional[CodeFactorGrade]:
        try:
            readme = await github.get_readme(owner, repo)
        except GitHubAPIError as e:
            logger.debug("README unavailable", repository=f"{owner}/{repo}", status_code=e.status_code)
            return None
        except (ValueError, TypeError, AttributeError) as e:
            # Undecodable content or payload; transport errors still propagate.
            logger.debug("README unreadable", repository=f"{owner}/{repo}", error=str(e))
            return None

        try:
            return parse_code_factor_badge(readme)
        except Exception as e:
            logger.debug("README badge scan skipped", repository=f"{owner}/{repo}", error=str(e))
            return None

    async def _collect_runs(self, github: GitHubService, owner: str, repo: str) -> List[WorkflowRun]:
        try:
            runs = await github.list_workflow_runs(owner, repo)
            return [
                WorkflowRun(
                    id=run["id"],
                    name=run.get("name"),
                    status=run.get("status"),
                    conclusion=run.get("conclusion"),
                    branch=run.get("head_branch"),
                    created_at=run.get("created_at"),
                    updated_at=run.get("updated_at"),
                    html_url=run.get("html_url"),
                    event=run.get("event")
                )
                for run in runs
            ]
        except Exception as e:
            logger.warning("Workflow runs unavailable", repository=f"{owner}/{repo}", error=str(e))
            return []

    async def _collect_commits(self, github: GitHubService, owner: str, repo: str) -> List[CommitSummary]:
        try:
            commits = await github.list_commits(owner, repo)
            return [
                CommitSummary(
                    sha=commit["sha"],
                    short_sha=commit["sha"][:7],
                    message=commit["commit"]["message"].split("\n")[0],
                    author=commit["commit"]["author"]["name"],
                    date=commit["commit"]["author"]["date"],
                    html_url=commit.get("html_url")
                )
                for commit in commits
            ]
        except Exception as e:
            logger.warning("Commits unavailable", repository=f"{owner}/{repo}", error=str(e))
            return []

    async def _collect_branch_count(self, github: GitHubService, owner: str, repo: str) -> Optional[int]:
        try:
            return await github.count_branches(owner, repo)
        except Exception as e:
            logger.warning("Branch count unavailable", repository=f"{owner}/{repo}", error=str(e))
            return None

    async def fetch_repo_data(self, owner: str, repo: str, token: Optional[str]) -> RepoStatus:
        """
        Collect everything shown for one repository.

        All requests are issued together. A failed request only empties its
        own field. The issues, metadata and README requests are the ones every
        round depends on, so a network failure on any of them fails the
        repository as a whole.
        """
        try:
            github = self.github_factory(token)
            results = await asyncio.gather(
                self._collect_issues(github, owner, repo),
                self._collect_pages(github, owner, repo),
                self._collect_code_factor(github, owner, repo),
                self._collect_runs(github, owner, repo),
                self._collect_commits(github, owner, repo),
                self._collect_branch_count(github, owner, repo),
                return_exceptions=True
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            (open_issues, open_prs, dashboard), (pages_url, coverage), grade, runs, commits, branch_count = results
        except Exception as e:
            logger.error("Failed to fetch repository",
                         repository=f"{owner}/{repo}",
                         error=str(e),
                         error_type=type(e).__name__)
            return RepoStatus(error=str(e) or type(e).__name__)

        return RepoStatus(
            runs=runs,
            commits=commits,
            open_issues=open_issues,
            open_prs=open_prs,
            branch_count=branch_count,
            pages_url=pages_url,
            readme_coverage=coverage,
            code_factor_grade=grade,
            dependency_dashboard=dashboard
        )

    async def fetch_all(self, config: MonitorConfig) -> StatusSnapshot:
        """
        Poll every configured repository and store the round's results.

        Repositories are fetched concurrently and fail independently. The
        snapshot only carries an error when every repository failed.
        """
        if not config.repos:
            return self.store.clear()

        self.store.begin_round()
        try:
            results = await asyncio.gather(*(
                self.fetch_repo_data(ref.owner, ref.repo, config.github_token)
                for ref in config.repos
            ))
        except BaseException:
            self.store.abandon_round()
            raise

        statuses = {ref.key: status for ref, status in zip(config.repos, results)}
        errors = [f"{key}: {status.error}" for key, status in statuses.items() if status.error]
        error = ALL_FAILED_ERROR if errors and len(errors) == len(statuses) else None

        logger.info("Poll round complete",
                    repo_count=len(statuses),
                    failed_count=len(errors),
                    errors=errors or None)
        return self.store.replace(statuses, error=error)

    async def refresh(self) -> StatusSnapshot:
        """Run a round against the current config."""
        return await self.fetch_all(self.config)

    def trigger(self) -> asyncio.Task:
        """Start a round in the background; rounds already running are left alone."""
        task = asyncio.create_task(self.refresh())
        self._rounds.add(task)
        task.add_done_callback(self._rounds.discard)
        return task

    async def _run_timer(self, interval: int) -> None:
        while True:
            self.trigger()
            await asyncio.sleep(interval)

    def start(self, config: Optional[MonitorConfig] = None) -> None:
        """(Re)start the timer, optionally switching to a new config."""
        if config is not None:
            self.config = config
        self.stop()

        if not self.config.repos:
            self.store.clear()
            logger.info("No repositories configured, poller idle")
            return

        interval = self.config.effective_refresh_interval
        self._timer_task = asyncio.create_task(self._run_timer(interval))
        logger.info("Poller started", interval=interval, repo_count=len(self.config.repos))

    def stop(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()
