"""
Business logic services for the Repo Monitor application.
"""

from .github_service import GitHubService
from .approval_service import ApprovalService
from .poller import RepoPoller, StatusStore
from .aggregation_service import ApprovalTracker
from .command_service import CommandService, CommandHistory

__all__ = [
    "GitHubService",
    "ApprovalService",
    "RepoPoller",
    "StatusStore",
    "ApprovalTracker",
    "CommandService",
    "CommandHistory"
]
