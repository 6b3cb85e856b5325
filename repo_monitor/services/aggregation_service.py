"""
Aggregation of poll results into dashboard views, and per-item approval tracking.
"""

import asyncio
from typing import Dict, List, Optional, Set

import structlog

from ..config import RepoRef, settings
from ..exceptions import AuthRequiredError, RepoMonitorError
from ..models.dashboard_models import (
    AggregatedApprovalItem, ApprovalState, ApprovalSummary, RepoSummary
)
from ..models.github_models import RepoStatus
from .approval_service import ApprovalService
from .poller import RepoPoller
from .status_format import format_time_ago, get_status_info

logger = structlog.get_logger(__name__)


def approval_item_id(owner: str, repo: str, line_index: int) -> str:
    return f"{owner}/{repo}-{line_index}"


def aggregate_pending_approvals(statuses: Dict[str, RepoStatus]) -> List[AggregatedApprovalItem]:
    """
    Merge every repository's pending approvals into one list.

    Repositories without a Dependency Dashboard are skipped. Order is
    repository order, then document order within each dashboard.
    """
    items = []
    for status in statuses.values():
        dashboard = status.dependency_dashboard
        if dashboard is None:
            continue

        for approval in dashboard.pending_approvals:
            items.append(AggregatedApprovalItem(
                id=approval_item_id(dashboard.owner, dashboard.repo, approval.line_index),
                owner=dashboard.owner,
                repo=dashboard.repo,
                repo_key=dashboard.repo_key,
                issue_number=dashboard.number,
                dashboard_url=dashboard.url,
                approval=approval
            ))
    return items


def count_pending(items: List[AggregatedApprovalItem]) -> int:
    """Pending approvals, not counting the "approve all" shortcut items."""
    return sum(1 for item in items if not item.approval.is_approve_all)


def count_dashboards(statuses: Dict[str, RepoStatus]) -> int:
    return sum(1 for status in statuses.values() if status.dependency_dashboard is not None)


def build_repo_summaries(repos: List[RepoRef], statuses: Dict[str, RepoStatus]) -> List[RepoSummary]:
    """One overview row per configured repository, in config order."""
    summaries = []
    for ref in repos:
        status = statuses.get(ref.key)
        if status is None:
            summaries.append(RepoSummary(key=ref.key, latest_run=get_status_info(None)))
            continue

        latest_commit = status.commits[0] if status.commits else None
        dashboard = status.dependency_dashboard
        summaries.append(RepoSummary(
            key=ref.key,
            latest_run=get_status_info(status.runs[0] if status.runs else None),
            last_commit_age=format_time_ago(latest_commit.date) if latest_commit and latest_commit.date else None,
            open_issues=status.open_issues,
            open_prs=status.open_prs,
            branch_count=status.branch_count,
            pending_approvals=count_pending(aggregate_pending_approvals({ref.key: status})) if dashboard else 0,
            error=status.error
        ))
    return summaries


class ApprovalTracker:
    """
    Tracks approval progress per item: idle -> approving -> approved | error.

    The poll results are never edited after an approval. A refresh is
    scheduled shortly afterwards instead, giving GitHub time to show the
    ticked box.
    """

    def __init__(
        self,
        poller: RepoPoller,
        approval_service: Optional[ApprovalService] = None,
        refresh_delay: Optional[float] = None
    ):
        self.poller = poller
        self.approval_service = approval_service or ApprovalService()
        self.refresh_delay = settings.approval_refresh_delay if refresh_delay is None else refresh_delay
        self._states: Dict[str, ApprovalState] = {}
        self._errors: Dict[str, str] = {}
        self._pending_refreshes: Set[asyncio.Task] = set()

    def _with_state(self, item: AggregatedApprovalItem) -> AggregatedApprovalItem:
        return item.model_copy(update={
            "state": self._states.get(item.id, ApprovalState.IDLE),
            "error": self._errors.get(item.id)
        })

    def _set_state(self, item_id: str, state: ApprovalState, error: Optional[str] = None) -> None:
        self._states[item_id] = state
        if error is None:
            self._errors.pop(item_id, None)
        else:
            self._errors[item_id] = error

    def list_items(self) -> List[AggregatedApprovalItem]:
        """Current approvals with their tracked state."""
        items = aggregate_pending_approvals(self.poller.store.snapshot().repositories)

        # Items that dropped out of the dashboard start over as idle if they return.
        current = {item.id for item in items}
        self._states = {key: state for key, state in self._states.items() if key in current}
        self._errors = {key: error for key, error in self._errors.items() if key in current}

        return [self._with_state(item) for item in items]

    def summary(self) -> ApprovalSummary:
        items = self.list_items()
        return ApprovalSummary(
            items=items,
            pending_count=count_pending(items),
            dashboard_count=count_dashboards(self.poller.store.snapshot().repositories)
        )

    def find_item(self, owner: str, repo: str, line_index: int) -> Optional[AggregatedApprovalItem]:
        item_id = approval_item_id(owner, repo, line_index)
        for item in self.list_items():
            if item.id == item_id:
                return item
        return None

    def get_state(self, item_id: str) -> ApprovalState:
        return self._states.get(item_id, ApprovalState.IDLE)

    async def approve(self, item: AggregatedApprovalItem, token: Optional[str]) -> AggregatedApprovalItem:
        """
        Submit one approval and record its outcome.

        Items already approving or approved are returned as they are.

        Raises:
            RepoMonitorError: the submission failed; the item is left in the
                error state carrying the message. Unexpected errors also
                leave the item in the error state before propagating.
        """
        state = self.get_state(item.id)
        if state in (ApprovalState.APPROVING, ApprovalState.APPROVED):
            return self._with_state(item)

        self._set_state(item.id, ApprovalState.APPROVING)
        try:
            if not token:
                raise AuthRequiredError()
            await self.approval_service.submit_approval(
                item.owner, item.repo, item.issue_number, item.approval, token
            )
        except RepoMonitorError as e:
            self._set_state(item.id, ApprovalState.ERROR, str(e))
            logger.warning("Approval failed", item_id=item.id, error=str(e))
            raise
        except Exception as e:
            self._set_state(item.id, ApprovalState.ERROR, str(e) or type(e).__name__)
            logger.error("Approval failed unexpectedly",
                         item_id=item.id,
                         error=str(e),
                         error_type=type(e).__name__)
            raise

        self._set_state(item.id, ApprovalState.APPROVED)
        self._schedule_refresh()
        return self._with_state(item)

    def _schedule_refresh(self) -> None:
        task = asyncio.create_task(self._refresh_later())
        self._pending_refreshes.add(task)
        task.add_done_callback(self._pending_refreshes.discard)

    async def _refresh_later(self) -> None:
        await asyncio.sleep(self.refresh_delay)
        await self.poller.refresh()
