"""
Parser for the dependency bot's Dependency Dashboard issue body.

The bot lists update branches as Markdown task-list items under level-2
headings. Items that still need a human decision are unchecked and carry an
HTML comment naming the action the bot performs when the box is ticked::

    ## Pending Approval

    - [ ] <!-- approve-branch=renovate/foo -->Update foo to v2
    - [ ] <!-- approve-all-pending-prs -->**Create all pending approval PRs at once**

The patterns below are the whole contract with the bot's output format.
"""

import re
from typing import List, Optional, Tuple

import structlog

from ..models.github_models import PendingApproval

logger = structlog.get_logger(__name__)

APPROVE_ALL_ACTION = "approve-all-pending-prs"

SECTION_PATTERN = re.compile(
    r"^##\s*(Pending Approval|Awaiting Schedule|Rate-Limited)", re.IGNORECASE
)
HEADING_PATTERN = re.compile(r"^##\s")
UNCHECKED_PATTERN = re.compile(r"^\s*-\s*\[\s*\]")
MARKER_PATTERN = re.compile(
    r"<!--\s*(approve-branch|unschedule-branch|approve-all-pending-prs)=?([^>]*?)\s*-->"
)
LEADING_COMMENT_PATTERN = re.compile(r"^<!--[^>]*-->")


def _parse_marker(line: str) -> Tuple[Optional[str], Optional[str]]:
    match = MARKER_PATTERN.search(line)
    if not match:
        return None, None
    return match.group(1), match.group(2).strip() or None


def _parse_name(line: str) -> str:
    """Text after the checkbox and an optional leading comment."""
    rest = UNCHECKED_PATTERN.sub("", line, count=1).lstrip()
    rest = LEADING_COMMENT_PATTERN.sub("", rest, count=1)
    return rest.strip()


def parse_pending_approvals(body: Optional[str]) -> List[PendingApproval]:
    """
    Extract unchecked approval items from a Dependency Dashboard body.

    Args:
        body: Raw issue body

    Returns:
        Pending approvals in document order. A body without any of the
        recognized sections yields an empty list.
    """
    if not body:
        return []

    approvals = []
    in_section = False
    current_section = ""

    for index, line in enumerate(body.split("\n")):
        section_match = SECTION_PATTERN.match(line)
        if section_match:
            in_section = True
            current_section = section_match.group(1)
            continue

        if HEADING_PATTERN.match(line) and in_section:
            in_section = False
            current_section = ""
            continue

        if not in_section or not UNCHECKED_PATTERN.match(line):
            continue

        name = _parse_name(line)
        if not name:
            continue

        action_type, branch = _parse_marker(line)
        approvals.append(PendingApproval(
            name=name,
            line_index=index,
            original_line=line,
            section=current_section,
            action_type=action_type,
            branch=branch,
            is_approve_all=action_type == APPROVE_ALL_ACTION
        ))

    logger.debug("Parsed dependency dashboard", pending_count=len(approvals))
    return approvals
