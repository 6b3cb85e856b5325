"""
Local command line routes.
"""

from typing import Dict, List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ..config import MonitorConfig
from ..models.command_models import CommandRequest, CommandResult, GitInfo
from ..services.command_service import CommandHistory, CommandService
from .dependencies import get_command_history, get_command_service, get_monitor_config

logger = structlog.get_logger(__name__)
router = APIRouter()


def _require_base_path(config: MonitorConfig) -> str:
    if not config.repos_base_path:
        raise HTTPException(
            status_code=400,
            detail='Configure "reposBasePath" to use the command line'
        )
    return config.repos_base_path


@router.post("/execute", response_model=Dict[str, CommandResult])
async def execute_command(
    request: CommandRequest,
    config: MonitorConfig = Depends(get_monitor_config),
    command_service: CommandService = Depends(get_command_service),
    history: CommandHistory = Depends(get_command_history)
):
    """Run a command in every repository clone and return all results."""
    base_path = _require_base_path(config)
    history.add(request.command)

    logger.info("Executing command", command=request.command, repo_count=len(config.repos))
    return await command_service.execute_batch(request.command, base_path, config.repos)


@router.post("/stream")
async def stream_command(
    request: CommandRequest,
    config: MonitorConfig = Depends(get_monitor_config),
    command_service: CommandService = Depends(get_command_service),
    history: CommandHistory = Depends(get_command_history)
):
    """Run a command in every repository clone, streaming events as NDJSON."""
    base_path = _require_base_path(config)
    history.add(request.command)

    async def events():
        async for event in command_service.execute_streaming(request.command, base_path, config.repos):
            yield event.model_dump_json() + "\n"

    logger.info("Streaming command", command=request.command, repo_count=len(config.repos))
    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.get("/history", response_model=List[str])
async def get_history(history: CommandHistory = Depends(get_command_history)):
    """Get recently executed commands, oldest first."""
    return history.entries()


@router.get("/git-info", response_model=Dict[str, GitInfo])
async def get_git_info(
    config: MonitorConfig = Depends(get_monitor_config),
    command_service: CommandService = Depends(get_command_service)
):
    """Get the current branch and branch activity of every local clone."""
    return await command_service.get_all_git_info(config.repos_base_path, config.repos)
