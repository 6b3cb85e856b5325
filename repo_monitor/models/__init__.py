"""
Pydantic models for the Repo Monitor application.
"""

from .github_models import PendingApproval, DependencyDashboard, RepoStatus
from .dashboard_models import AggregatedApprovalItem, ApprovalState, StatusSnapshot
from .command_models import CommandResult, GitInfo

__all__ = [
    "PendingApproval",
    "DependencyDashboard",
    "RepoStatus",
    "AggregatedApprovalItem",
    "ApprovalState",
    "StatusSnapshot",
    "CommandResult",
    "GitInfo"
]
