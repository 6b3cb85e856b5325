"""
Approval submitter: ticks one Dependency Dashboard checkbox on GitHub.

Submission is a read-modify-write of the whole issue body with no version
check. Two approvals racing against the same issue can overwrite each
other's checkbox; the later write wins.
"""

import re
from typing import Optional

import httpx
import structlog

from ..exceptions import (
    AuthRequiredError, FetchFailedError, GitHubAPIError,
    PermissionDeniedError, UpdateFailedError
)
from ..models.github_models import PendingApproval
from .github_service import GitHubService

logger = structlog.get_logger(__name__)

# Only the list item's own box, never a "[ ]" later in the text.
CHECKBOX_PATTERN = re.compile(r"^(\s*-\s*)\[\s*\]")


def check_approval_line(line: str) -> str:
    """Tick the task-list box at the start of a line. Checked lines are returned unchanged."""
    return CHECKBOX_PATTERN.sub(r"\1[x]", line, count=1)


def apply_approval(body: str, line_index: int) -> str:
    """
    Tick the checkbox on one line of an issue body.

    An index outside the body leaves it unchanged: the dashboard may have
    been rewritten since the approval was listed.
    """
    lines = body.split("\n")
    if 0 <= line_index < len(lines):
        lines[line_index] = check_approval_line(lines[line_index])
    return "\n".join(lines)


class ApprovalService:
    """Submits approvals against a repository's Dependency Dashboard issue."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def submit_approval(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        approval: PendingApproval,
        token: Optional[str]
    ) -> bool:
        """
        Re-fetch the issue, tick the approval's checkbox and save the body.

        Args:
            owner: Repository owner
            repo: Repository name
            issue_number: Dependency Dashboard issue number
            approval: The item to approve; its line index targets the fresh body
            token: GitHub token with write access

        Returns:
            True once GitHub accepted the update

        Raises:
            AuthRequiredError: no token was given
            FetchFailedError: the issue could not be read
            PermissionDeniedError: the token lacks write scope
            UpdateFailedError: GitHub rejected the update for another reason
        """
        if not token:
            raise AuthRequiredError()

        github = GitHubService(token=token, transport=self.transport)
        repository = f"{owner}/{repo}"

        try:
            issue = await github.get_issue(owner, repo, issue_number)
            body = issue.get("body") or ""
        except GitHubAPIError as e:
            logger.error("Failed to fetch dashboard issue",
                         repository=repository,
                         issue_number=issue_number,
                         status_code=e.status_code)
            raise FetchFailedError(f"Failed to fetch issue: {e.status_code}", e.status_code) from e
        except httpx.HTTPError as e:
            logger.error("Failed to fetch dashboard issue", repository=repository, error=str(e))
            raise FetchFailedError(f"Failed to fetch issue: {e}") from e
        except (ValueError, AttributeError) as e:
            logger.error("Unreadable dashboard issue", repository=repository, error=str(e))
            raise FetchFailedError("Failed to fetch issue: invalid response") from e

        new_body = apply_approval(body, approval.line_index)

        try:
            await github.update_issue_body(owner, repo, issue_number, new_body)
        except GitHubAPIError as e:
            logger.error("Failed to update dashboard issue",
                         repository=repository,
                         issue_number=issue_number,
                         status_code=e.status_code,
                         error=e.message)
            if e.status_code == 403:
                raise PermissionDeniedError() from e
            raise UpdateFailedError(
                e.message or f"Failed to update issue: {e.status_code}", e.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to update dashboard issue", repository=repository, error=str(e))
            raise UpdateFailedError(f"Failed to update issue: {e}") from e
        except ValueError as e:
            logger.error("Unreadable update response", repository=repository, error=str(e))
            raise UpdateFailedError("Failed to update issue: invalid response") from e

        logger.info("Approved dependency update",
                    repository=repository,
                    issue_number=issue_number,
                    name=approval.name,
                    branch=approval.branch)
        return True
