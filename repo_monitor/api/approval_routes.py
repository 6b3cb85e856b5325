"""
Dependency Dashboard approval routes.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from ..config import MonitorConfig
from ..exceptions import (
    AuthRequiredError, FetchFailedError, PermissionDeniedError, RepoMonitorError
)
from ..models.dashboard_models import AggregatedApprovalItem, ApprovalSummary
from ..services.aggregation_service import ApprovalTracker
from .dependencies import get_approval_tracker, get_monitor_config

logger = structlog.get_logger(__name__)
router = APIRouter()


def _status_code_for(error: RepoMonitorError) -> int:
    if isinstance(error, AuthRequiredError):
        return 401
    if isinstance(error, PermissionDeniedError):
        return 403
    if isinstance(error, FetchFailedError) and error.status_code == 404:
        return 404
    return 502


@router.get("", response_model=ApprovalSummary)
async def list_approvals(tracker: ApprovalTracker = Depends(get_approval_tracker)):
    """Get pending approvals across every repository's Dependency Dashboard."""
    return tracker.summary()


@router.post("/{owner}/{repo}/{line_index}/approve", response_model=AggregatedApprovalItem)
async def approve(
    owner: str,
    repo: str,
    line_index: int,
    tracker: ApprovalTracker = Depends(get_approval_tracker),
    config: MonitorConfig = Depends(get_monitor_config)
):
    """Tick one pending approval's checkbox on GitHub."""
    item = tracker.find_item(owner, repo, line_index)
    if item is None:
        raise HTTPException(status_code=404, detail="Pending approval not found")

    try:
        result = await tracker.approve(item, config.github_token)
    except RepoMonitorError as e:
        raise HTTPException(status_code=_status_code_for(e), detail=str(e))

    logger.info("Approval submitted",
                item_id=result.id,
                name=result.approval.name,
                state=result.state.value)
    return result
