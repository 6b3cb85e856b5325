"""
Pydantic models for dashboard state and presentation.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel

from .github_models import PendingApproval, RepoStatus


class ApprovalState(str, Enum):
    """Per-item approval progress."""
    IDLE = "idle"
    APPROVING = "approving"
    APPROVED = "approved"
    ERROR = "error"


class AggregatedApprovalItem(BaseModel):
    """A pending approval joined with the dashboard it belongs to."""
    id: str  # "{owner}/{repo}-{line_index}"
    owner: str
    repo: str
    repo_key: str
    issue_number: int
    dashboard_url: str
    approval: PendingApproval
    state: ApprovalState = ApprovalState.IDLE
    error: Optional[str] = None


class ApprovalSummary(BaseModel):
    """All pending approvals across repositories."""
    items: List[AggregatedApprovalItem] = []
    pending_count: int = 0
    dashboard_count: int = 0


class StatusSnapshot(BaseModel):
    """The most recently completed poll round."""
    repositories: Dict[str, RepoStatus] = {}
    loading: bool = False
    error: Optional[str] = None
    last_update: Optional[datetime] = None


class StatusInfo(BaseModel):
    """Display status for a workflow run."""
    status: str  # "success", "failure", "cancelled", "pending", "unknown"
    label: str


class RepoSummary(BaseModel):
    """One row of the repository overview."""
    key: str
    latest_run: StatusInfo
    last_commit_age: Optional[str] = None
    open_issues: Optional[int] = None
    open_prs: Optional[int] = None
    branch_count: Optional[int] = None
    pending_approvals: int = 0
    error: Optional[str] = None
