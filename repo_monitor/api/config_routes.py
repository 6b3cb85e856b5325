"""
Monitor configuration routes.
"""

from pathlib import Path
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..config import (
    ConfigStore, MonitorConfig, format_repos_for_display, parse_repos_input
)
from ..exceptions import ConfigValidationError
from ..services.poller import RepoPoller
from .dependencies import get_config_store, get_poller

logger = structlog.get_logger(__name__)
router = APIRouter()


class ConfigResponse(BaseModel):
    """The active config and where it was loaded from or saved to."""
    config: MonitorConfig
    path: Optional[str] = None
    repos_text: str = ""  # one "owner/repo" per line


class ReposTextRequest(BaseModel):
    """Repository list as edited in a text box."""
    text: str


def _response(config: MonitorConfig, path: Optional[Path]) -> ConfigResponse:
    return ConfigResponse(
        config=config,
        path=str(path) if path else None,
        repos_text=format_repos_for_display(config.repos)
    )


def _save_and_apply(config: MonitorConfig, poller: RepoPoller, config_store: ConfigStore) -> ConfigResponse:
    try:
        path = config_store.save(config)
    except ConfigValidationError as e:
        logger.warning("Rejected invalid config", errors=e.errors)
        raise HTTPException(status_code=422, detail=e.errors)
    except OSError as e:
        logger.error("Failed to save config", error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to save config: {e}")

    poller.start(config)
    return _response(config, path)


@router.get("", response_model=ConfigResponse, response_model_by_alias=True)
async def get_config(
    poller: RepoPoller = Depends(get_poller),
    config_store: ConfigStore = Depends(get_config_store)
):
    """Get the active monitor config."""
    return _response(poller.config, config_store.loaded_from)


@router.put("", response_model=ConfigResponse, response_model_by_alias=True)
async def save_config(
    config: MonitorConfig,
    poller: RepoPoller = Depends(get_poller),
    config_store: ConfigStore = Depends(get_config_store)
):
    """Validate, save and apply a new monitor config."""
    return _save_and_apply(config, poller, config_store)


@router.put("/repos", response_model=ConfigResponse, response_model_by_alias=True)
async def save_repos_text(
    request: ReposTextRequest,
    poller: RepoPoller = Depends(get_poller),
    config_store: ConfigStore = Depends(get_config_store)
):
    """Replace the repository list from ``owner/repo`` lines, keeping the rest of the config."""
    repos = parse_repos_input(request.text)
    logger.info("Updating repositories from text", repo_count=len(repos))
    config = poller.config.model_copy(update={"repos": repos})
    return _save_and_apply(config, poller, config_store)
