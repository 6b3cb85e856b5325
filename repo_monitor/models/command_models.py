"""
Pydantic models for the local command line and git probe.
"""

from typing import Literal, Optional, Union
from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Outcome of running a command in one directory."""
    success: bool
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None


class CommandRequest(BaseModel):
    """Request to run a command across every configured repository."""
    command: str = Field(..., min_length=1)


class CommandProgress(BaseModel):
    """Streaming progress event."""
    type: Literal["progress"] = "progress"
    current: int
    total: int
    repo: Optional[str] = None
    status: str  # "running" or "complete"


class CommandResultEvent(BaseModel):
    """Streaming event carrying one repository's result."""
    type: Literal["result"] = "result"
    repo: str
    result: CommandResult


CommandEvent = Union[CommandProgress, CommandResultEvent]


class GitInfo(BaseModel):
    """Local clone information."""
    current_branch: Optional[str] = None
    total_branches: Optional[int] = None
    active_branches: Optional[int] = None
    error: Optional[str] = None
