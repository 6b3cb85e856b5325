"""
Exception types raised by the Repo Monitor services.
"""

from typing import List, Optional


class RepoMonitorError(Exception):
    """Base class for all Repo Monitor errors."""


class GitHubAPIError(RepoMonitorError):
    """A GitHub REST call returned a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message or f"GitHub API error: {status_code}")


class AuthRequiredError(RepoMonitorError):
    """A write was attempted without a GitHub token."""

    def __init__(self, message: str = "GitHub token required"):
        super().__init__(message)


class FetchFailedError(RepoMonitorError):
    """The issue could not be read before applying an approval."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ApprovalError(RepoMonitorError):
    """The updated issue body was rejected by GitHub."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PermissionDeniedError(ApprovalError):
    """The token lacks the scope needed to edit the issue."""

    def __init__(self, status_code: int = 403):
        super().__init__(
            'Token needs "repo" scope for write access. '
            "Update token at github.com/settings/tokens",
            status_code=status_code,
        )


class UpdateFailedError(ApprovalError):
    """Any other rejected issue update."""


class ConfigValidationError(RepoMonitorError):
    """The monitor configuration failed validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors))
