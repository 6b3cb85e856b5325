"""
Display helpers for workflow runs and timestamps.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from ..models.dashboard_models import StatusInfo
from ..models.github_models import WorkflowRun

IN_PROGRESS_STATUSES = ("in_progress", "queued", "waiting")

CONCLUSION_STATUS = {
    "success": StatusInfo(status="success", label="Success"),
    "failure": StatusInfo(status="failure", label="Failed"),
    "cancelled": StatusInfo(status="cancelled", label="Cancelled"),
    "skipped": StatusInfo(status="cancelled", label="Skipped"),
}


def get_status_info(run: Optional[WorkflowRun]) -> StatusInfo:
    """Map a workflow run to the badge shown for it."""
    if run is None:
        return StatusInfo(status="unknown", label="Unknown")

    if run.status == "completed":
        known = CONCLUSION_STATUS.get(run.conclusion or "")
        if known:
            return known
        return StatusInfo(status="cancelled", label=run.conclusion or "Unknown")

    if run.status in IN_PROGRESS_STATUSES:
        return StatusInfo(status="pending", label="In Progress")

    return StatusInfo(status="pending", label=run.status or "Pending")


def format_time_ago(value: Union[datetime, str], now: Optional[datetime] = None) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - value).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
