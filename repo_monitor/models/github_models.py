"""
Pydantic models for GitHub repository data collected by the poller.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class PendingApproval(BaseModel):
    """An unchecked Dependency Dashboard checkbox awaiting approval."""
    name: str
    line_index: int  # position in the body it was parsed from; never reuse across fetches
    original_line: str
    section: str
    action_type: Optional[str] = None  # "approve-branch", "unschedule-branch", "approve-all-pending-prs"
    branch: Optional[str] = None
    is_approve_all: bool = False


class DependencyDashboard(BaseModel):
    """The dependency bot's tracking issue for one repository."""
    owner: str
    repo: str
    number: int
    title: str
    url: str
    body: str = ""
    updated_at: Optional[datetime] = None
    pending_approvals: List[PendingApproval] = []

    @property
    def repo_key(self) -> str:
        return f"{self.owner}/{self.repo}"


class WorkflowRun(BaseModel):
    """Compact summary of a GitHub Actions workflow run."""
    id: int
    name: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    branch: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    html_url: Optional[str] = None
    event: Optional[str] = None


class CommitSummary(BaseModel):
    """Compact summary of a commit on the default branch."""
    sha: str
    short_sha: str
    message: str
    author: Optional[str] = None
    date: Optional[datetime] = None
    html_url: Optional[str] = None


class CodeFactorGrade(BaseModel):
    """CodeFactor badge linked from the repository README."""
    badge_url: str
    url: str


class RepoStatus(BaseModel):
    """
    Everything collected for one repository in a poll round.

    Every field is independently optional. When ``error`` is set the whole
    collection failed and the other fields are empty.
    """
    runs: List[WorkflowRun] = []
    commits: List[CommitSummary] = []
    open_issues: Optional[int] = None
    open_prs: Optional[int] = None
    branch_count: Optional[int] = None
    pages_url: Optional[str] = None
    readme_coverage: Optional[float] = None
    code_factor_grade: Optional[CodeFactorGrade] = None
    dependency_dashboard: Optional[DependencyDashboard] = None
    error: Optional[str] = None
