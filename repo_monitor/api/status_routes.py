"""
Repository status routes.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException

from ..config import MonitorConfig
from ..models.dashboard_models import RepoSummary, StatusSnapshot
from ..models.github_models import RepoStatus
from ..services.aggregation_service import build_repo_summaries
from ..services.poller import RepoPoller
from .dependencies import get_monitor_config, get_poller

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=StatusSnapshot)
async def get_status(poller: RepoPoller = Depends(get_poller)):
    """Get the results of the most recently completed poll round."""
    return poller.store.snapshot()


@router.post("/refresh", response_model=StatusSnapshot)
async def refresh_status(poller: RepoPoller = Depends(get_poller)):
    """Poll every repository now and return the new results."""
    snapshot = await poller.refresh()

    logger.info("Manual refresh complete",
                repo_count=len(snapshot.repositories),
                error=snapshot.error)
    return snapshot


@router.get("/summary", response_model=List[RepoSummary])
async def get_status_summary(
    poller: RepoPoller = Depends(get_poller),
    config: MonitorConfig = Depends(get_monitor_config)
):
    """Get one overview row per configured repository."""
    return build_repo_summaries(config.repos, poller.store.snapshot().repositories)


@router.get("/{owner}/{repo}", response_model=RepoStatus)
async def get_repository_status(
    owner: str,
    repo: str,
    poller: RepoPoller = Depends(get_poller)
):
    """Get the latest status of one repository."""
    status = poller.store.snapshot().repositories.get(f"{owner}/{repo}")
    if status is None:
        raise HTTPException(status_code=404, detail=f"Repository {owner}/{repo} has no status yet")
    return status
